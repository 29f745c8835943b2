"""
Base schema and seed loading for freshly created tenants.

Two file kinds are understood:

    - ``.py``: executed with ``runpy``; the module globals carry ``backend``
      (the switching backend, already switched into the new tenant) and
      ``tenant``. Use it for ORM-driven seeds.
    - anything else: treated as a SQL script and executed statement by
      statement on the backend's bound connection.

A configured file that does not exist stops the process. Provisioning a
tenant without its base schema would leave a database that looks valid but
is not, so this is deliberately not a recoverable error.
"""

import logging
import runpy
from pathlib import Path

logger = logging.getLogger(__name__)


def load_or_abort(path, backend) -> None:
    path = Path(path)
    if not path.exists():
        raise SystemExit(f"{path} doesn't exist yet")

    if path.suffix == ".py":
        run_python_file(path, backend)
    else:
        load_sql_file(path, backend)


def load_sql_file(path, backend) -> None:
    script = Path(path).read_text()
    backend.driver.execute_script(backend.owner_name, script)
    logger.info("Loaded %s into tenant %s.", path, backend.current)


def run_python_file(path, backend) -> None:
    runpy.run_path(
        str(path),
        init_globals={"backend": backend, "tenant": backend.current},
        run_name="__tenantswitch_load__",
    )
    logger.info("Ran %s for tenant %s.", path, backend.current)
