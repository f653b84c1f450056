import importlib
import pathlib
import re

import pytest

DOCS = pathlib.Path(__file__).parent.parent / "docs"


def _automodapi_modules():
    text = (DOCS / "index.rst").read_text()
    return re.findall(r"^\.\. automodapi:: (\S+)$", text, flags=re.MULTILINE)


def test_index_documents_the_public_modules() -> None:
    modules = _automodapi_modules()
    assert "pnbody.accelerations" in modules
    assert "pnbody.extras" in modules


@pytest.mark.parametrize("module", _automodapi_modules())
def test_documented_modules_import(module) -> None:
    mod = importlib.import_module(module)
    public = getattr(mod, "__all__", None) or [
        name for name in vars(mod) if not name.startswith("_")
    ]
    for name in public:
        assert hasattr(mod, name)
