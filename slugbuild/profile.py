from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from . import paths
from .step import Step

if TYPE_CHECKING:
    from .context import BuildContext


NODEJS_PROFILE = 'export PATH="$HOME/vendor/node/bin:$HOME/bin:$HOME/node_modules/.bin:$PATH"\n'

GEMSET_PROFILE = """\
export GEM_HOME="$HOME/.gs"
export GEM_PATH="$HOME/.gs"
export PATH="$HOME/.gs/bin:$HOME/vendor/ruby/bin:$PATH"
"""

PROFILE_SCRIPTS = {
    "nodejs.sh": NODEJS_PROFILE,
    "gs.sh": GEMSET_PROFILE,
}


class ProfileScriptsStep(Step):
    """Write ``.profile.d`` scripts exporting the runtime environment.

    The scripts are sourced at dyno boot, where ``$HOME`` is the app root.
    """

    title = "Writing profile scripts"

    def run(self, ctx: "BuildContext") -> Dict[str, Any]:
        profile_dir = paths.profile_dir(ctx.build_dir)
        profile_dir.mkdir(parents=True, exist_ok=True)
        written = []
        for name, body in PROFILE_SCRIPTS.items():
            (profile_dir / name).write_text(body)
            written.append(name)
        return {"status": "success", "written": written}
