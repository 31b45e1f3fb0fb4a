"""Flask JSON adapter for driving a Dot Machine.

The presentation layer (layout, animation, sound) lives in the browser.
This adapter only turns its UI actions into calls on the machine and
returns the resulting change logs, so no rule logic is re-derived on
the client.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any

from flask import Flask, jsonify, request

from src.dotmachine.machine import DotMachine
from src.dotmachine.schema import parse_explode_request, parse_machine_config, parse_marker_request
from src.dotmachine.types import MachineConfig
from src.dotmachine.validation import CascadeLimitError, ConfigurationError

app = Flask(__name__)

# The machine being served (set by init_app)
_machine: DotMachine | None = None

# Cascade cap for every served machine; clients may post any rule
DEFAULT_MAX_FIRINGS = 10000
_max_firings: int = DEFAULT_MAX_FIRINGS

# Flask serves requests on threads; the machine's own lock is an asyncio one
_machine_lock = threading.Lock()


def get_machine() -> DotMachine:
    """Get the machine for the current request."""
    if _machine is None:
        raise RuntimeError("Machine not initialized. Call init_app() first.")
    return _machine


def init_app(
    config: MachineConfig | None = None,
    max_firings: int = DEFAULT_MAX_FIRINGS,
) -> Flask:
    """Initialize the Flask app with a fresh machine.

    Args:
        config: Machine configuration (defaults to "000" in binary)
        max_firings: Cap on firings per cascade, also applied to
            machines replaced through PUT /api/machine

    Returns:
        Configured Flask app
    """
    global _machine, _max_firings
    _max_firings = max_firings
    _machine = DotMachine(config, max_firings=max_firings)
    return app


def _run(coro) -> Any:
    with _machine_lock:
        return asyncio.run(coro)


def _json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Request body must be a JSON object")
    return data


# =============================================================================
# Machine Routes
# =============================================================================


@app.route("/api/machine")
def api_machine():
    """Current state of every cell."""
    return jsonify(get_machine().snapshot())


@app.route("/api/machine", methods=["PUT"])
def api_reset_machine():
    """Replace the machine with one built from the posted config."""
    global _machine
    config = parse_machine_config(_json_body())
    with _machine_lock:
        _machine = DotMachine(config, max_firings=_max_firings)
        snapshot = _machine.snapshot()
    return jsonify(snapshot)


@app.route("/api/machine/explode", methods=["POST"])
def api_explode_all():
    """Cascade from the least significant cell."""
    machine = get_machine()
    result = _run(machine.explode_all())
    return jsonify({"result": result.to_dict(), "machine": machine.snapshot()})


# =============================================================================
# Cell Routes
# =============================================================================


@app.route("/api/cells/<int:index>/markers", methods=["POST"])
def api_add_marker(index: int):
    """Add a dot, an antidot, or a dot/antidot pair to a cell."""
    machine = get_machine()
    kind = parse_marker_request(_json_body()).kind
    if kind == "pair":
        _run(machine.add_pair(index))
    else:
        _run(machine.add_marker(index, kind))
    return jsonify(machine.snapshot())


@app.route("/api/cells/<int:index>/can-fire")
def api_can_fire(index: int):
    """Whether the rule matches with this cell as trigger."""
    return jsonify({"index": index, "canFire": get_machine().can_fire(index)})


@app.route("/api/cells/<int:index>/explode", methods=["POST"])
def api_explode(index: int):
    """Explode at one cell, optionally cascading."""
    machine = get_machine()
    recursive = parse_explode_request(_json_body()).recursive
    result = _run(machine.explode(index, recursive=recursive))
    return jsonify({"result": result.to_dict(), "machine": machine.snapshot()})


@app.route("/api/cells/<int:index>/annihilate", methods=["POST"])
def api_annihilate(index: int):
    """Cancel dot/antidot pairs in one cell."""
    machine = get_machine()
    result = _run(machine.annihilate(index))
    return jsonify({"result": result.to_dict(), "machine": machine.snapshot()})


# =============================================================================
# Error Handlers
# =============================================================================


@app.errorhandler(ConfigurationError)
def bad_request(e):
    """Handle malformed input."""
    return jsonify({"error": str(e)}), 400


@app.errorhandler(CascadeLimitError)
def cascade_too_long(e):
    """Handle cascades that hit the firing cap."""
    return jsonify({"error": str(e)}), 422


@app.errorhandler(IndexError)
def no_such_cell(e):
    """Handle out-of-range cell indices."""
    return jsonify({"error": str(e)}), 404


@app.errorhandler(404)
def not_found(e):
    """Handle 404 errors."""
    return jsonify({"error": "Not found"}), 404
