"""FastAPI dependencies resolving the process-wide pipeline objects."""

from starlette.requests import HTTPConnection

from riskstream.domains.risk.dispatcher import RealTimeDispatcher
from riskstream.shared.store import KeyValueStore


def get_dispatcher(connection: HTTPConnection) -> RealTimeDispatcher:
    return connection.app.state.dispatcher


def get_store(connection: HTTPConnection) -> KeyValueStore | None:
    return getattr(connection.app.state, "store", None)
