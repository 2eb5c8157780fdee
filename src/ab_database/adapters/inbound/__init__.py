"""Inbound adapters for the database wrapper.

Inbound adapters handle incoming requests and convert them to
operations on the Database port.

Exports:
    Action dispatch:
        - ActionDispatcher: Routes action names and JSON arguments to operations
        - ActionArgs: Base pydantic model for action arguments
        - parse_args: Validate argument JSON against an action model
        - to_json_compatible: Encode operation results for JSON output
    REST API:
        - create_app: Create a FastAPI application
        - run_server: Run the REST API server
"""

from ab_database.adapters.inbound.dispatch import (
    ActionArgs,
    ActionDispatcher,
    parse_args,
    to_json_compatible,
)
from ab_database.adapters.inbound.rest_api import (
    ActionResponse,
    create_app,
    run_server,
)

__all__ = [
    # Action dispatch
    "ActionDispatcher",
    "ActionArgs",
    "parse_args",
    "to_json_compatible",
    # REST API
    "create_app",
    "run_server",
    "ActionResponse",
]
