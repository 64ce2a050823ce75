# hrpay_api/models/__init__.py
import importlib
import pkgutil


def load_all():
    """Import every model module (subpackages included) so all tables register on db.metadata."""
    for mod in pkgutil.walk_packages(__path__, prefix=f"{__name__}."):
        importlib.import_module(mod.name)
