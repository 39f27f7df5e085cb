"""Load a per-user password lookup for restores.

The reference names a module (dotted import path or ``.py`` file) and
optionally the function, as ``module:function``. Without a function name
``get_password_for_username`` is used. The result is a plain callable the
CLI hands to the importer.
"""

from __future__ import annotations

import importlib
import importlib.util
import inspect
import logging
import os
from typing import Any, Callable

from scripts.userpool_backup.errors import ModuleLoadError

logger = logging.getLogger("userpool_backup.password_module")

DEFAULT_FUNCTION = "get_password_for_username"

PasswordResolver = Callable[[str], Any]


def load_password_resolver(reference: str) -> PasswordResolver:
    module_ref, _, func_name = reference.partition(":")
    func_name = func_name or DEFAULT_FUNCTION
    if not module_ref:
        raise ModuleLoadError(f"Cannot load password module {reference!r}: empty module")

    try:
        module = _import(module_ref)
    except Exception as exc:
        raise ModuleLoadError(f"Cannot load password module {module_ref!r}: {exc}") from exc

    func = getattr(module, func_name, None)
    if not callable(func):
        raise ModuleLoadError(
            f"Cannot find {func_name}(username) in password module {module_ref!r}"
        )
    try:
        inspect.signature(func).bind("username")
    except TypeError as exc:
        raise ModuleLoadError(
            f"{module_ref}:{func_name} must accept a single username argument"
        ) from exc
    except ValueError:
        # Builtins without an introspectable signature
        pass

    logger.info("Loaded password resolver %s:%s", module_ref, func_name)
    return func


def _import(module_ref: str):
    if module_ref.endswith(".py") or os.sep in module_ref:
        path = os.path.abspath(module_ref)
        if not os.path.isfile(path):
            raise FileNotFoundError(path)
        name = os.path.splitext(os.path.basename(path))[0]
        spec = importlib.util.spec_from_file_location(f"userpool_backup_pwd_{name}", path)
        if spec is None or spec.loader is None:
            raise ImportError(f"no loader for {path}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module
    return importlib.import_module(module_ref)
