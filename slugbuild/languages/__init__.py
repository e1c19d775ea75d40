from .node import NodeCacheStep, NodeInstallStep, NodeVersionStep, NpmInstallStep
from .ruby import GemsetInstallStep, RubyInstallStep, RubyVersionStep

__all__ = [
    "RubyVersionStep",
    "RubyInstallStep",
    "GemsetInstallStep",
    "NodeVersionStep",
    "NodeInstallStep",
    "NpmInstallStep",
    "NodeCacheStep",
]
