"""End-to-end tests for the slugbuild CLI"""
import json
import threading
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from slugbuild import paths
from slugbuild.cli import app
from slugbuild.step import Step


runner = CliRunner()


@pytest.fixture
def app_dir(build_dirs, write_package_json):
    build, cache, env = build_dirs
    write_package_json({"name": "app", "engines": {"node": "0.10.30"}, "scripts": {"start": "node app.js"}})
    (build / ".ruby-version").write_text("2.1.5\n")
    (build / ".slugbuild.yaml").write_text("telemetry: false\n")
    (env / "NPM_TOKEN").write_text("abc\n")
    return build, cache, env


def _npm_creates_modules(self, ctx, cmd, env=None, **config):
    if cmd[:2] == ["npm", "install"]:
        (ctx.build_dir / "node_modules" / "express").mkdir(parents=True, exist_ok=True)
    return {"status": "success", "returncode": 0}


class TestCompile:
    @pytest.fixture(autouse=True)
    def make_on_path(self, monkeypatch):
        for key in ("SLUGBUILD_TELEMETRY", "SLUGBUILD_GEMS", "SLUGBUILD_TELEMETRY_URL"):
            monkeypatch.delenv(key, raising=False)
        with patch("slugbuild.envvalidate.shutil.which", return_value="/usr/bin/make") as which:
            yield which

    def _compile(self, build, cache, env, fake_fetch, **command_kwargs):
        command_kwargs.setdefault("side_effect", _npm_creates_modules)
        with patch("slugbuild.languages.ruby.fetch_tarball", fake_fetch), \
                patch("slugbuild.languages.node.fetch_tarball", fake_fetch), \
                patch.object(Step, "command", autospec=True, **command_kwargs) as command:
            result = runner.invoke(app, ["compile", str(build), str(cache), str(env)])
        return result, command

    def test_successful_build(self, app_dir, fake_fetch):
        build, cache, env = app_dir
        result, command = self._compile(build, cache, env, fake_fetch)

        assert result.exit_code == 0, result.output
        cmds = [c.args[2] for c in command.call_args_list]
        assert ["npm", "install", "--production"] in cmds
        assert ["gem", "install", "--no-document", "dep", "gs"] in cmds
        assert cmds[-1] == ["make", "compile"]
        npm_install = next(c for c in command.call_args_list if c.args[2][:2] == ["npm", "install"])
        assert npm_install.kwargs["env"]["NPM_TOKEN"] == "abc"

        assert (build / "Procfile").read_text() == "web: npm start\n"
        assert (build / ".profile.d" / "nodejs.sh").exists()
        assert (build / ".profile.d" / "gs.sh").exists()
        assert (build / ".heroku" / "node-version").read_text() == "0.10.30\n"
        assert (build / "vendor" / "ruby" / "bin").is_dir()
        assert (build / "vendor" / "node" / "bin").is_dir()

        assert paths.ruby_cache_dir(cache, "2.1.5").is_dir()
        assert paths.gemset_cache_dir(cache).is_dir()
        assert (paths.node_cache_dir(cache) / "node_modules" / "express").is_dir()
        assert (paths.node_cache_dir(cache) / "node-version").read_text() == "0.10.30\n"

    def test_make_compile_failure_exit_code_propagates(self, app_dir, fake_fetch):
        build, cache, env = app_dir

        def make_fails(self, ctx, cmd, env=None, **config):
            if cmd[0] == "make":
                return {"status": "error", "error": "make compile: Process exited with code 2", "returncode": 2}
            return _npm_creates_modules(self, ctx, cmd, env, **config)

        result, command = self._compile(build, cache, env, fake_fetch, side_effect=make_fails)

        assert result.exit_code == 2
        assert "make compile" in result.output
        assert [c.args[2] for c in command.call_args_list][-1] == ["make", "compile"]

    def test_missing_make_fails_before_any_step(self, app_dir, fake_fetch):
        build, cache, env = app_dir
        with patch("slugbuild.envvalidate.shutil.which", return_value=None):
            result, command = self._compile(build, cache, env, fake_fetch)

        assert result.exit_code == 1
        assert "environment validation failed" in result.output
        command.assert_not_called()
        assert fake_fetch.calls == []
        assert not (build / "vendor").exists()

    def test_telemetry_disabled_by_environment(self, app_dir, fake_fetch, monkeypatch):
        build, cache, env = app_dir
        (build / ".slugbuild.yaml").write_text("telemetry: true\ntelemetry_url: https://telemetry.example.com\n")
        monkeypatch.setenv("SLUGBUILD_TELEMETRY", "0")
        with patch("slugbuild.hook.requests.post") as post:
            result, _ = self._compile(build, cache, env, fake_fetch)

        assert result.exit_code == 0, result.output
        post.assert_not_called()

    def test_telemetry_disabled_by_config_file(self, app_dir, fake_fetch):
        build, cache, env = app_dir
        (build / ".slugbuild.yaml").write_text("telemetry: \"off\"\ntelemetry_url: https://telemetry.example.com\n")
        with patch("slugbuild.hook.requests.post") as post:
            result, _ = self._compile(build, cache, env, fake_fetch)

        assert result.exit_code == 0, result.output
        post.assert_not_called()

    def test_telemetry_posts_package_json(self, app_dir, fake_fetch):
        build, cache, env = app_dir
        (build / ".slugbuild.yaml").write_text("telemetry: true\ntelemetry_url: https://telemetry.example.com\n")
        posted = threading.Event()
        with patch("slugbuild.hook.requests.post", side_effect=lambda *a, **kw: posted.set()) as post:
            result, _ = self._compile(build, cache, env, fake_fetch)
            assert posted.wait(timeout=5)

        assert result.exit_code == 0, result.output
        args, kwargs = post.call_args
        assert args[0] == "https://telemetry.example.com"
        assert json.loads(kwargs["data"])["name"] == "app"
        assert kwargs["headers"]["Content-Type"] == "application/json"

    def test_failing_command_exit_code_propagates(self, app_dir, fake_fetch):
        build, cache, env = app_dir
        failed = {"status": "error", "error": "gem install: Process exited with code 7", "returncode": 7}
        with patch("slugbuild.languages.ruby.fetch_tarball", fake_fetch), \
                patch.object(Step, "command", autospec=True, return_value=failed) as command:
            result = runner.invoke(app, ["compile", str(build), str(cache)])

        assert result.exit_code == 7
        assert command.call_count == 1
        assert not (build / "Procfile").exists()
        assert not (build / "vendor" / "node").exists()

    def test_download_failure_exits_1(self, app_dir):
        build, cache, env = app_dir
        with patch("slugbuild.languages.ruby.fetch_tarball", side_effect=RuntimeError("HTTP 404")):
            result = runner.invoke(app, ["compile", str(build), str(cache)])
        assert result.exit_code == 1
        assert "HTTP 404" in result.output

    def test_missing_build_dir_is_usage_error(self, temp_dir):
        result = runner.invoke(app, ["compile", str(temp_dir / "nope"), str(temp_dir / "cache")])
        assert result.exit_code == 2


class TestDetect:
    def test_detects_node_app(self, build_dirs, write_package_json):
        build, _, _ = build_dirs
        write_package_json({"name": "app"})
        result = runner.invoke(app, ["detect", str(build)])
        assert result.exit_code == 0
        assert result.output.strip() == "Ruby/Node.js"

    def test_detects_gems_manifest(self, build_dirs):
        build, _, _ = build_dirs
        (build / ".gems").write_text("cuba\n")
        assert runner.invoke(app, ["detect", str(build)]).exit_code == 0

    def test_no_match(self, build_dirs):
        build, _, _ = build_dirs
        result = runner.invoke(app, ["detect", str(build)])
        assert result.exit_code == 1


class TestRelease:
    def test_release_yaml(self, build_dirs, write_package_json):
        build, _, _ = build_dirs
        write_package_json({"scripts": {"start": "node app.js"}})
        result = runner.invoke(app, ["release", str(build)])
        assert result.exit_code == 0
        assert yaml.safe_load(result.output) == {"addons": [], "default_process_types": {"web": "npm start"}}

    def test_release_without_web_process(self, build_dirs):
        build, _, _ = build_dirs
        result = runner.invoke(app, ["release", str(build)])
        assert yaml.safe_load(result.output)["default_process_types"] == {}

    def test_release_invalid_package_json(self, build_dirs):
        build, _, _ = build_dirs
        (build / "package.json").write_text(json.dumps([1, 2]))
        result = runner.invoke(app, ["release", str(build)])
        assert result.exit_code == 1
