"""Flask application factory for the simulator's JSON API.

``create_app`` starts a demand-paging session and exposes it to a
browser front end:

- ``GET /api/state`` — frames, swap blocks, page tables, pending fault.
- ``POST /api/reset`` — start a new session (``{"mode": "1" | "2", "config": {...}}``).
- ``POST /api/process`` — put a process on the CPU (``{"pid": n}``).
- ``POST /api/access`` — access a page of the active process (``{"page": n}``).
- ``POST /api/resolve`` — resolve the pending fault (``{"frame": n}``).
- ``POST /api/cancel`` — abandon the pending fault.
- ``GET /api/log`` — the session trace log.
"""

from __future__ import annotations

from typing import Any

from flask import Flask, Response, jsonify, request

from pagesim.config import PagingConfig
from pagesim.errors import (
    FaultPendingError,
    InvalidAddressError,
    NoPendingFaultError,
    NotFoundError,
    PageResidentError,
    PagingError,
)
from pagesim.session import Mode, Session, reset

_HTTP_BAD_REQUEST = 400
_HTTP_NOT_FOUND = 404
_HTTP_CONFLICT = 409
_HTTP_UNPROCESSABLE = 422

_EXTENSION_KEY = "pagesim"

_ERROR_STATUS: dict[type[PagingError], int] = {
    NotFoundError: _HTTP_NOT_FOUND,
    FaultPendingError: _HTTP_CONFLICT,
    NoPendingFaultError: _HTTP_CONFLICT,
    PageResidentError: _HTTP_CONFLICT,
    InvalidAddressError: _HTTP_UNPROCESSABLE,
}


class _BadRequestError(Exception):
    """Raised when a request body is missing a field or has the wrong type."""


def _json_object(data: Any) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = "Request body must be a JSON object"
        raise _BadRequestError(msg)
    return data


def _int_field(data: Any, name: str) -> int:
    data = _json_object(data)
    if name not in data:
        msg = f"Missing '{name}' field"
        raise _BadRequestError(msg)
    value = data[name]
    if isinstance(value, bool) or not isinstance(value, int | str):
        msg = f"'{name}' must be an integer"
        raise _BadRequestError(msg)
    try:
        return int(value)
    except ValueError:
        msg = f"'{name}' must be an integer"
        raise _BadRequestError(msg) from None


def _config_field(data: dict[str, Any], default: PagingConfig) -> PagingConfig:
    if "config" not in data:
        return default
    options = data["config"]
    if not isinstance(options, dict):
        msg = "'config' must be a JSON object"
        raise _BadRequestError(msg)
    try:
        return PagingConfig.from_mapping(options)
    except ValueError as e:
        raise _BadRequestError(str(e)) from None


def create_app(config: PagingConfig | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Machine layout used for every session the app creates.

    Returns:
        A configured Flask application ready to serve.

    """
    app = Flask(__name__)
    app.extensions[_EXTENSION_KEY] = reset(Mode.DEMAND, config)

    def current() -> Session:
        return app.extensions[_EXTENSION_KEY]

    @app.errorhandler(_BadRequestError)
    def bad_request(error: _BadRequestError) -> tuple[Response, int]:  # pyright: ignore[reportUnusedFunction]
        return jsonify({"error": str(error)}), _HTTP_BAD_REQUEST

    @app.errorhandler(PagingError)
    def paging_error(error: PagingError) -> tuple[Response, int]:  # pyright: ignore[reportUnusedFunction]
        status = _ERROR_STATUS.get(type(error), _HTTP_BAD_REQUEST)
        return jsonify({"error": str(error), "type": type(error).__name__}), status

    @app.route("/api/state")
    def state() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the whole simulator state."""
        return jsonify(current().describe())

    @app.route("/api/reset", methods=["POST"])
    def reset_session() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Replace the session with a fresh one.

        Expects JSON body: ``{"mode": "1" | "2", "config": {...}}``.  Both
        keys are optional: the mode defaults to demand paging and the
        machine layout to the current session's.

        """
        data = _json_object(request.get_json(silent=True))
        try:
            mode = Mode(str(data.get("mode", Mode.DEMAND)))
        except ValueError:
            return jsonify({"error": f"Unknown mode '{data.get('mode')}'"}), _HTTP_BAD_REQUEST
        config = _config_field(data, current().config)
        app.extensions[_EXTENSION_KEY] = reset(mode, config)
        return jsonify(current().describe())

    @app.route("/api/process", methods=["POST"])
    def select_process() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Put a process on the CPU."""
        pid = _int_field(request.get_json(silent=True), "pid")
        current().select_process(pid)
        return jsonify({"active_pid": pid})

    @app.route("/api/access", methods=["POST"])
    def access() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Access a page of the process on the CPU.

        Use ``/api/process`` first to access another process's pages.

        Returns:
            JSON with ``status`` and either ``frame`` or ``fault_kind``.

        """
        page = _int_field(request.get_json(silent=True), "page")
        session = current()
        result = session.access(session.active_pid, page)
        payload = result.to_dict()
        if not result.is_hit:
            payload["candidate_frames"] = session.candidate_frames()
        return jsonify(payload)

    @app.route("/api/resolve", methods=["POST"])
    def resolve() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Resolve the pending fault into the chosen frame.

        A refusal (protected frame, full swap) is a normal answer, not an
        HTTP error: ``{"success": false, "reason": ...}``.

        """
        frame = _int_field(request.get_json(silent=True), "frame")
        result = current().resolve_pending(frame)
        return jsonify(result.to_dict())

    @app.route("/api/cancel", methods=["POST"])
    def cancel() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Abandon the pending fault."""
        pending = current().cancel()
        return jsonify({"cancelled": {"pid": pending.pid, "page": pending.page}})

    @app.route("/api/log")
    def log() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the trace log as formatted lines."""
        return jsonify({"entries": [str(e) for e in current().logger.entries]})

    return app


def main() -> None:
    """Run the web API development server.

    This is the ``pagesim-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)
