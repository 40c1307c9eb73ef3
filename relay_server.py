# relay_server.py
"""
HTTP relay between the mobile client and the configured desktop backends.

Request flow:
  HTTP/JSON -> route handler -> snapshot of (config, radio backend, logging
  backend) -> backend I/O -> uniform {success, message} JSON -> stats.

Lifecycle:
  STOPPED -> STARTING -> RUNNING -> STOPPING -> STOPPED
  update_config() on a running relay is stop + swap + start; the HTTP port is
  closed for that moment.

Every request is served on its own thread by Werkzeug. Requests are not
ordered against each other: two /frequency calls racing to the same radio
end with whichever frame reached the backend last.
"""

from __future__ import annotations
import os
import socket
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from flask import Flask, jsonify, request
from werkzeug.serving import make_server

from backend_interface import BackendError, ConfigError, LoggingBackend, RadioControlBackend
from backend_registry import build_logging, build_radio_control
from band_plan import format_mhz
from contact import ContactPayloadError, ContactRecord
from loghandler import get_logger
from relay_config import RelayConfig
from utils import iso_utc, pretty_duration

logger = None

EventListener = Callable[[str, Dict[str, Any]], None]


class RelayState(Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class RelayError(Exception):
    """Generic relay lifecycle error."""
    pass

class RelayStateError(RelayError):
    """start()/stop() called in the wrong state."""
    pass

class RelayStartError(RelayError):
    """The HTTP port could not be bound."""
    pass

class RequestError(ValueError):
    """Malformed request body; reported as a JSON failure, not an HTTP error."""
    pass


@dataclass
class ServerStats:
    request_count: int = 0
    error_count: int = 0
    last_request: Optional[str] = None
    start_time: Optional[str] = None
    started_at: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        uptime = None
        if self.started_at is not None:
            uptime = pretty_duration(time.monotonic() - self.started_at, style="clock")
        return {
            "requestCount": self.request_count,
            "errorCount": self.error_count,
            "lastRequest": self.last_request,
            "startTime": self.start_time,
            "uptime": uptime,
        }


class BackendSet:
    """
    One configuration and the backend clients built from it.

    Requests acquire the current set for their whole lifetime. A replaced set
    is retired and only closed after its last in-flight request releases it.
    """

    def __init__(self, config: RelayConfig, radio: RadioControlBackend, logbook: LoggingBackend):
        self.config = config
        self.radio = radio
        self.logbook = logbook
        self._lock = threading.Lock()
        self._users = 0
        self._retired = False
        self._closed = False

    @classmethod
    def build(cls, config: RelayConfig, debug: bool = False) -> "BackendSet":
        radio = build_radio_control(config, debug=debug)
        try:
            logbook = build_logging(config)
        except Exception:
            radio.close()
            raise
        return cls(config, radio, logbook)

    def acquire(self) -> "BackendSet":
        with self._lock:
            self._users += 1
        return self

    def release(self) -> None:
        with self._lock:
            self._users -= 1
            close_now = self._retired and self._users == 0
        if close_now:
            self._close()

    def retire(self) -> None:
        with self._lock:
            self._retired = True
            close_now = self._users == 0
        if close_now:
            self._close()

    def _close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        for backend in (self.radio, self.logbook):
            try:
                backend.close()
            except Exception as e:
                logger.warning(f"[RELAY] closing {backend.label} raised: {e}")


class RelayServer:
    """Uniform HTTP surface over whichever radio/logging backends are configured."""

    def __init__(self, config: Optional[RelayConfig] = None, debug: bool = False):
        global logger
        if logger is None:
            logger = get_logger()

        self.debug = debug
        self._lifecycle_lock = threading.RLock()
        self._backends_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._backends = BackendSet.build(config or RelayConfig(), debug)
        self._state = RelayState.STOPPED
        self._http = None
        self._thread: Optional[threading.Thread] = None
        self._listeners: List[EventListener] = []
        self.stats = ServerStats()
        self.app = self._build_app()

    # ---------------------------------------------------------------------
    # Introspection
    # ---------------------------------------------------------------------

    @property
    def config(self) -> RelayConfig:
        with self._backends_lock:
            return self._backends.config

    @property
    def state(self) -> RelayState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is RelayState.RUNNING

    @property
    def port(self) -> Optional[int]:
        """Bound HTTP port while running (differs from config when it asked for 0)."""
        http = self._http
        return http.server_address[1] if http is not None else None

    def stats_snapshot(self) -> Dict[str, Any]:
        with self._stats_lock:
            return self.stats.as_dict()

    # ---------------------------------------------------------------------
    # Events
    # ---------------------------------------------------------------------

    def on_event(self, listener: EventListener) -> None:
        """Register listener(event, data) for 'log', 'started' and 'stopped'."""
        self._listeners.append(listener)

    def _emit(self, event: str, **data: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, data)
            except Exception as e:
                logger.error(f"[RELAY] event listener failed on '{event}': {e}")

    def _log(self, kind: str, message: str) -> None:
        level = {"error": logger.error, "warning": logger.warning}.get(kind, logger.info)
        level(f"[RELAY] {message}")
        self._emit("log", type=kind, message=message)

    # ---------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------

    def _bind(self, host: str, port: int) -> socket.socket:
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            if os.name != "nt":
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            sock.listen(128)
        except OSError:
            sock.close()
            raise
        return sock

    def start(self) -> None:
        """Bind the HTTP port and serve in a background thread. Raises RelayStartError on bind failure."""
        with self._lifecycle_lock:
            if self._state is not RelayState.STOPPED:
                raise RelayStateError("Server already running")
            self._state = RelayState.STARTING
            config = self.config

            try:
                listener = self._bind(config.http_host, config.http_port)
            except OSError as e:
                self._state = RelayState.STOPPED
                self._log("error", f"Server error: cannot listen on {config.http_host}:{config.http_port}: {e}")
                raise RelayStartError(
                    f"Cannot listen on {config.http_host}:{config.http_port}: {e}"
                ) from e

            try:
                # make_server() exits the process on bind errors; hand it the bound socket instead.
                self._http = make_server(
                    config.http_host, config.http_port, self.app, threaded=True, fd=listener.fileno()
                )
            except Exception:
                self._state = RelayState.STOPPED
                raise
            finally:
                listener.close()

            self._thread = threading.Thread(
                target=self._http.serve_forever, name="relay-http", daemon=True
            )
            self._thread.start()

            with self._stats_lock:
                self.stats.start_time = iso_utc()
                self.stats.started_at = time.monotonic()
            self._state = RelayState.RUNNING

        self._log("success", f"Server started on port {self.port}")
        self._emit("started", port=self.port)

    def stop(self) -> None:
        """Close the HTTP listener. In-flight requests finish on their own threads."""
        with self._lifecycle_lock:
            if self._state is not RelayState.RUNNING:
                raise RelayStateError("Server not running")
            self._state = RelayState.STOPPING

            http, thread = self._http, self._thread
            try:
                http.shutdown()
                http.server_close()
                if thread is not None:
                    thread.join(timeout=5.0)
            finally:
                self._http = None
                self._thread = None
                with self._stats_lock:
                    self.stats.started_at = None
                self._state = RelayState.STOPPED

        self._log("info", "Server stopped")
        self._emit("stopped")

    def update_config(self, new_config: RelayConfig) -> None:
        """
        Apply a new configuration.

        Running: stop, swap backends, start again (a short outage). Stopped:
        swap only. If the new backends cannot be built the old ones stay.
        """
        with self._lifecycle_lock:
            was_running = self.is_running
            if was_running:
                self.stop()
            try:
                fresh = BackendSet.build(new_config, self.debug)
                with self._backends_lock:
                    old, self._backends = self._backends, fresh
                old.retire()
                self._log(
                    "info",
                    f"Configuration applied: radio={new_config.radio_control} logging={new_config.logging_mode}",
                )
            finally:
                if was_running:
                    self.start()

    def close(self) -> None:
        """Stop if running and release backend sockets."""
        with self._lifecycle_lock:
            if self.is_running:
                self.stop()
            with self._backends_lock:
                current = self._backends
            current.retire()

    @contextmanager
    def _using_backends(self) -> Iterator[BackendSet]:
        with self._backends_lock:
            backends = self._backends.acquire()
        try:
            yield backends
        finally:
            backends.release()

    # ---------------------------------------------------------------------
    # HTTP surface
    # ---------------------------------------------------------------------

    def _build_app(self) -> Flask:
        app = Flask("pota_relay")

        @app.before_request
        def _count_request():
            with self._stats_lock:
                self.stats.request_count += 1
                self.stats.last_request = iso_utc()
            if request.method == "OPTIONS":
                return "", 200
            return None

        @app.after_request
        def _cors(response):
            response.headers["Access-Control-Allow-Origin"] = "*"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            return response

        @app.errorhandler(404)
        @app.errorhandler(405)
        def _not_found(_error):
            return jsonify({"success": False, "message": "Endpoint not found"}), 404

        routes: List[Tuple[str, str, str, Callable[[], Dict[str, Any]], str]] = [
            ("/", "root", "GET", self._handle_health, ""),
            ("/health", "health", "GET", self._handle_health, ""),
            ("/status", "status", "GET", self._handle_status, ""),
            ("/test", "test", "GET", self._handle_test, "Connection failed"),
            ("/frequency", "frequency", "POST", self._handle_frequency, "Frequency set failed"),
            ("/log", "log", "POST", self._handle_log, "Log failed"),
            ("/log/delete", "log_delete", "POST", self._handle_log_delete, "Log delete failed"),
            ("/command", "command", "POST", self._handle_command, "Command failed"),
        ]
        for rule, endpoint, method, handler, failure_label in routes:
            app.add_url_rule(
                rule,
                endpoint=endpoint,
                view_func=self._guarded(handler, failure_label),
                methods=[method],
                provide_automatic_options=False,
            )
        return app

    def _guarded(self, handler: Callable[[], Dict[str, Any]], failure_label: str):
        """Wrap a handler so every failure is a 200 JSON body with a message."""

        def view():
            try:
                return jsonify(handler())
            except (BackendError, RequestError, ContactPayloadError) as e:
                message = str(e) or e.__class__.__name__
            except Exception as e:
                logger.exception(f"[RELAY] Unexpected error in {request.path}")
                message = f"{e.__class__.__name__}: {e}" if str(e) else e.__class__.__name__

            with self._stats_lock:
                self.stats.error_count += 1
            self._log("error", f"{failure_label or 'Request failed'}: {message}")
            return jsonify({"success": False, "message": f"Error: {message}"})

        return view

    @staticmethod
    def _json_body() -> Dict[str, Any]:
        body = request.get_json(force=True, silent=True)
        if not isinstance(body, dict):
            raise RequestError("request body must be a JSON object")
        return body

    # ---- handlers (return a JSON-able dict or raise) ----

    def _handle_health(self) -> Dict[str, Any]:
        return {"status": "ok", "hrdPort": self.config.hrd_port}

    def _handle_status(self) -> Dict[str, Any]:
        return {
            "success": True,
            "running": self.is_running,
            "state": self._state.value,
            "stats": self.stats_snapshot(),
            "config": self.config.as_status_dict(),
        }

    def _handle_test(self) -> Dict[str, Any]:
        self._log("info", "Test connection request")
        with self._using_backends() as backends:
            result = backends.radio.test_connection()
        self._log("success", result.message)
        return result.as_dict()

    def _handle_frequency(self) -> Dict[str, Any]:
        frequency_hz, mode = _parse_tune_request(self._json_body())
        self._log("info", f"Setting frequency: {frequency_hz} Hz, mode: {mode}")
        with self._using_backends() as backends:
            message = backends.radio.tune(frequency_hz, mode)
            label = backends.radio.label
        self._log("success", f"{label}: {message}")
        return {"success": True, "message": message}

    def _handle_log(self) -> Dict[str, Any]:
        record = ContactRecord.from_payload(self._json_body())
        self._log("info", f"Logging QSO: {record.callsign} on {format_mhz(record.frequency_hz)} MHz {record.mode}")
        with self._using_backends() as backends:
            message = backends.logbook.log_contact(record)
        self._log("success", f"{message}: {record.callsign}")
        return {"success": True, "message": message}

    def _handle_log_delete(self) -> Dict[str, Any]:
        callsign = str(self._json_body().get("callsign") or "").strip()
        if not callsign:
            raise RequestError("callsign is required")
        with self._using_backends() as backends:
            message = backends.logbook.delete_contact(callsign)
        self._log("success", message)
        return {"success": True, "message": message}

    def _handle_command(self) -> Dict[str, Any]:
        body = self._json_body()
        command = str(body.get("command") or "").strip()
        if not command:
            raise RequestError("command is required")
        prefix = bool(body.get("prependContext", False))
        with self._using_backends() as backends:
            send_raw = getattr(backends.radio, "send_raw", None)
            if send_raw is None:
                raise ConfigError("Raw commands need radio control mode 'hrd'")
            response = send_raw(command, prefix)
        return {"success": True, "response": response}


def _parse_tune_request(body: Dict[str, Any]) -> Tuple[int, str]:
    raw = body.get("frequency")
    if raw is None or isinstance(raw, bool) or str(raw).strip() == "":
        raise RequestError("frequency (Hz) is required")
    try:
        frequency_hz = int(round(float(raw)))
    except (TypeError, ValueError, OverflowError):
        raise RequestError(f"frequency is not a number: {raw!r}")
    if frequency_hz <= 0:
        raise RequestError(f"frequency must be positive, got {frequency_hz}")

    mode = str(body.get("mode") or "").strip().upper()
    if not mode:
        raise RequestError("mode is required")
    return frequency_hz, mode
