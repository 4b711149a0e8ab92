import os
import importlib

# Automatically import all .py files in this folder so every table registers on Base.metadata
package_dir = os.path.dirname(__file__)
for filename in sorted(os.listdir(package_dir)):
    if filename.endswith(".py") and filename not in {"__init__.py", "base.py"}:
        module_name = f"models.{filename[:-3]}"
        importlib.import_module(module_name)

# Import Base last so it's available here
from .base import Base


def create_db_and_tables(bind) -> None:
    Base.metadata.create_all(bind=bind)
