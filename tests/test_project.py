import sys
import textwrap

import pytest

from stackwire.app import StackwireApp
from stackwire.exceptions import StackwireProjectError
from stackwire.project import (
    APP_FILE_NAME,
    APP_MODULE_NAME,
    get_dot_stackwire_dir,
    get_project_root,
    load_app,
)

APP_SOURCE = """\
from stackwire.app import StackwireApp

app = StackwireApp("{name}")


@app.assemble
def assemble(descriptor):
    descriptor.log_group("logs")
"""


def write_app(directory, name="demo", source=APP_SOURCE):
    directory.mkdir(parents=True, exist_ok=True)
    (directory / APP_FILE_NAME).write_text(textwrap.dedent(source).format(name=name))
    return directory


def test_project_root_is_found_from_subdirectories(tmp_path):
    write_app(tmp_path)
    nested = tmp_path / "lambda" / "handlers"
    nested.mkdir(parents=True)

    assert get_project_root(nested) == tmp_path.resolve()
    assert get_dot_stackwire_dir(tmp_path) == tmp_path / ".stackwire"


def test_missing_project_is_reported(tmp_path):
    with pytest.raises(StackwireProjectError, match="Run 'stackwire init'"):
        get_project_root(tmp_path)


def test_load_app_imports_the_app_object(tmp_path):
    write_app(tmp_path)
    path_before = list(sys.path)

    app = load_app(tmp_path)

    assert isinstance(app, StackwireApp)
    assert app.name == "demo"
    assert sys.path == path_before


def test_load_app_does_not_reuse_another_projects_module(tmp_path):
    first = load_app(write_app(tmp_path / "first", "first"))
    second = load_app(write_app(tmp_path / "second", "second"))

    assert first.name == "first"
    assert second.name == "second"
    assert sys.modules[APP_MODULE_NAME].app is second


def test_app_file_without_app_object_is_rejected(tmp_path):
    write_app(tmp_path, source="application = None\n")

    with pytest.raises(StackwireProjectError, match="must define 'app = StackwireApp"):
        load_app(tmp_path)
