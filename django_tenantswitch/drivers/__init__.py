from .base import BaseDatabaseDriver
from .connection_driver import DjangoConnectionDriver

__all__ = ["BaseDatabaseDriver", "DjangoConnectionDriver"]
