# hrms_payroll/models/__init__.py
import importlib
import pkgutil
import pathlib

_SKIP = ("__pycache__", "tests", "migrations")


def load_all():
    """
    Import every model module (directory read models, workflow records, and
    the payroll package) so db.metadata is complete before create_all or
    autogenerate. Returns the imported module names.
    """
    loaded = []

    def _walk(pkg_name: str, path: pathlib.Path):
        for mod in pkgutil.iter_modules([str(path)]):
            if mod.name in _SKIP:
                continue
            full = f"{pkg_name}.{mod.name}"
            importlib.import_module(full)
            loaded.append(full)
            if mod.ispkg:
                _walk(full, path / mod.name)

    _walk(__name__, pathlib.Path(__file__).parent)
    return loaded
