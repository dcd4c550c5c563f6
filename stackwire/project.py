import logging
import sys
from importlib import import_module
from pathlib import Path
from typing import TYPE_CHECKING

from stackwire.exceptions import StackwireProjectError

if TYPE_CHECKING:
    from stackwire.app import StackwireApp

logger = logging.getLogger(__name__)

APP_FILE_NAME = "stack_app.py"
APP_MODULE_NAME = "stack_app"
DOT_DIR_NAME = ".stackwire"


def get_project_root(start: Path | None = None) -> Path:
    """Find the project root by looking for stack_app.py in the directory and its parents."""
    current = (start or Path.cwd()).resolve()
    while True:
        if (current / APP_FILE_NAME).is_file():
            return current
        if current == current.parent:
            break
        current = current.parent
    raise StackwireProjectError(
        f"No stackwire project found: no {APP_FILE_NAME} in this or any parent directory. "
        "Run 'stackwire init' to create one."
    )


def get_dot_stackwire_dir(root: Path) -> Path:
    return root / DOT_DIR_NAME


def load_app(root: Path) -> "StackwireApp":
    """Import the project's app file and return its ``app`` object."""
    from stackwire.app import StackwireApp

    logger.debug("Loading %s from %s", APP_FILE_NAME, root)
    original_sys_path = list(sys.path)
    sys.path.insert(0, str(root))
    # Always import the file under the given root, not a previously loaded one
    sys.modules.pop(APP_MODULE_NAME, None)
    try:
        module = import_module(APP_MODULE_NAME)
    finally:
        sys.path = original_sys_path

    app = getattr(module, "app", None)
    if not isinstance(app, StackwireApp):
        raise StackwireProjectError(
            f"{root / APP_FILE_NAME} must define 'app = StackwireApp(...)'"
        )
    return app
