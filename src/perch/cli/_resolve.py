"""App import resolution for ``perch run``.

``"pkg.module:attr"`` names a module and an attribute on it. The
attribute may be dotted (``"service:factories.build"``) and defaults to
``app``. The working directory is importable, so ``perch run app:app``
works from a project root without installing anything.
"""

import importlib
import os
import sys
from typing import Any

from perch.app import App

DEFAULT_ATTRIBUTE = "app"


def _lookup(obj: Any, dotted: str, import_string: str) -> Any:
    for name in dotted.split("."):
        try:
            obj = getattr(obj, name)
        except AttributeError:
            msg = f"{import_string!r}: no attribute {name!r} on {obj!r}"
            raise AttributeError(msg) from None
    return obj


def resolve_app(import_string: str) -> App:
    """Resolve *import_string* to a perch App instance.

    A callable that is not an App is treated as a factory and called
    without arguments.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute path does not exist.
        TypeError: If the result is not a perch ``App``.
    """
    module_path, _, attr_path = import_string.partition(":")
    if not module_path:
        msg = f"{import_string!r} does not name a module"
        raise TypeError(msg)

    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    module = importlib.import_module(module_path)
    obj = _lookup(module, attr_path or DEFAULT_ATTRIBUTE, import_string)

    if not isinstance(obj, App) and callable(obj):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"App factory {import_string!r} failed: {exc}"
            raise TypeError(msg) from exc

    if not isinstance(obj, App):
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a perch.App instance"
        raise TypeError(msg)
    return obj
