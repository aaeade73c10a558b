"""Built-in controllers and the in-memory record store.

``ModelCrudController`` serves every model through wildcard routes;
``MetadataController`` documents the registered routes.
"""

from gravitycar.controllers.crud import ModelCrudController
from gravitycar.controllers.metadata import MetadataController
from gravitycar.controllers.store import InMemoryRecordStore

__all__ = ["InMemoryRecordStore", "MetadataController", "ModelCrudController"]
