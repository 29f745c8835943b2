"""
Driver capability interface.

A driver owns the physical side of tenant switching: named connection pools,
statement execution and database creation/removal. Backends never talk to a
database client directly; every call goes through a driver and names the pool
(``owner_name``) it targets.
"""

import sqlparse


class BaseDatabaseDriver:
    """
    Primitive operations the switching engine relies on.

    Subclasses implement the pool primitives and ``execute``/``fetch_value``;
    ``execute_script`` is built on top of ``execute``.
    """

    # Connection Pools
    # ================

    def establish_connection(self, config, owner_name: str):
        """Register a pool for ``owner_name`` built from ``config`` and return it."""
        raise NotImplementedError

    def retrieve_connection(self, owner_name: str):
        """Return the pool registered under ``owner_name`` or ``None``."""
        raise NotImplementedError

    def remove_connection(self, owner_name: str) -> None:
        """Close and forget the pool registered under ``owner_name``."""
        raise NotImplementedError

    def reconnect_connection(self, config, owner_name: str):
        """
        Replace the pool registered under ``owner_name`` with a fresh one.

        Drivers that can swap a pool without a window where ``owner_name`` is
        unknown should override this.
        """
        self.remove_connection(owner_name)
        return self.establish_connection(config, owner_name)

    # Statements
    # ==========

    def execute(self, owner_name: str, sql: str, params=None) -> None:
        raise NotImplementedError

    def fetch_value(self, owner_name: str, sql: str, params=None):
        """Run a query and return the first column of its first row, or ``None``."""
        raise NotImplementedError

    def execute_script(self, owner_name: str, script: str) -> None:
        """Split a multi-statement SQL script and execute each statement in order."""
        for statement in sqlparse.split(script):
            statement = sqlparse.format(statement, strip_comments=True).strip()
            if statement:
                self.execute(owner_name, statement)

    def clear_query_cache(self, owner_name: str) -> None:
        raise NotImplementedError

    # Databases
    # =========

    def create_database(self, owner_name: str, name: str) -> None:
        raise NotImplementedError

    def drop_database(self, owner_name: str, name: str) -> None:
        raise NotImplementedError
