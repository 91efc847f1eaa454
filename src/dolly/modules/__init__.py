"""Module discovery: directive scanning and module tree resolution."""

from .models import DEFAULT_TOP_MODULE, ModuleNode, ModuleTree
from .resolver import ModuleResolver, resolve, root_module_path

__all__ = [
    "DEFAULT_TOP_MODULE",
    "ModuleNode",
    "ModuleTree",
    "ModuleResolver",
    "resolve",
    "root_module_path",
]
