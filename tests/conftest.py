"""Shared fixtures: a real on-disk package with packaged resources and views."""

import sys

import pytest

from nestbox.conventions import StaticContentConventions

SITE_PACKAGE = "nestbox_fixture_site"

_FILES: dict[str, str | bytes] = {
    "__init__.py": "",
    "single.py": "VALUE = 1\n",
    "Resources/embedded.txt": "Embedded Text",
    "Resources/Subfolder/embedded2.txt": "Embedded2 Text",
    "Resources/Subfolder-with-hyphen/embedded3.txt": "Embedded3 Text",
    "Resources/site.css": "body { color: red; }",
    "Resources/logo.png": b"\x89PNG\r\n\x1a\n",
    "Resources/data.bin": b"\x00\x01\x02\x03",
    "Resources/helpers.py": "VALUE = 1\n",
    "Resources/__pycache__/helpers.cpython-314.pyc": b"\x00",
    "views/index.html": "<h1>{{ title }}</h1>",
    "views/admin/users.html": "<ul>{% for user in users %}<li>{{ user }}</li>{% end %}</ul>",
    "views/admin/notes.txt": "not a view",
}


@pytest.fixture(scope="session")
def site_package(tmp_path_factory: pytest.TempPathFactory):
    """Importable package ``nestbox_fixture_site`` with resources and views."""
    root = tmp_path_factory.mktemp("site")
    package_dir = root / SITE_PACKAGE
    for relative, content in _FILES.items():
        path = package_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")

    with pytest.MonkeyPatch.context() as mp:
        mp.syspath_prepend(str(root))
        yield SITE_PACKAGE
    sys.modules.pop(SITE_PACKAGE, None)


@pytest.fixture
def conventions(site_package: str) -> StaticContentConventions:
    """Conventions with ``/Foo`` bound to the fixture package's ``Resources``."""
    conventions = StaticContentConventions()
    conventions.bind("/Foo", site_package, "Resources")
    return conventions
