from __future__ import annotations

import json
import logging
import os
import platform
import queue
import socket
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


# -----------------------------
# Utilities
# -----------------------------

def _is_windows() -> bool:
    return os.name == "nt"


def _default_ipc_endpoint(app_name: str = "segplayer-mpv") -> str:
    """
    Windows: a named pipe under the pipe namespace
    Unix:    filesystem path to a unix socket
    The pid keeps two running instances apart.
    """
    name = f"{app_name}-{os.getpid()}"
    if _is_windows():
        return rf"\\.\pipe\{name}"
    return f"/tmp/{name}.sock"


def _remove_unix_socket_if_exists(path: str) -> None:
    if _is_windows():
        return
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError as e:
        # A stale but locked socket makes mpv fail to bind; start() reports it.
        logger.warning("Could not remove stale mpv socket %s: %s", path, e)


def _find_mpv_binary(preferred_path: Optional[str] = None) -> str:
    """
    Priority:
      1) preferred_path if it exists
      2) bundled third_party/mpv/<platform>/mpv relative to cwd
      3) "mpv" resolved from PATH by subprocess
    """
    if preferred_path and os.path.isfile(preferred_path):
        return preferred_path

    cwd = os.getcwd()
    sys_name = platform.system().lower()
    if _is_windows():
        bundled = [os.path.join(cwd, "third_party", "mpv", "windows", "mpv.exe")]
    elif sys_name == "darwin":
        bundled = [os.path.join(cwd, "third_party", "mpv", "macos", "mpv")]
    else:
        bundled = [os.path.join(cwd, "third_party", "mpv", "linux", "mpv")]
    bundled.append(os.path.join(cwd, "third_party", "mpv", "mpv"))

    for c in bundled:
        if os.path.isfile(c):
            return c
    return "mpv"


# -----------------------------
# IPC Client (transport layer)
# -----------------------------

class _MpvJsonIpcTransport:
    """
    Connects to the mpv IPC endpoint and exchanges JSON lines.

    Unix: AF_UNIX socket. Windows: mpv's named pipe opened as a binary file.
    A daemon thread reads lines into a queue; the GUI thread drains it.
    """

    def __init__(self, endpoint: str):
        self.endpoint = endpoint
        self._stop = threading.Event()
        self._rx_thread: Optional[threading.Thread] = None
        self._rx_queue: "queue.Queue[dict[str, Any]]" = queue.Queue()
        self._tx_lock = threading.Lock()
        self._pipe_fh = None
        self._sock: Optional[socket.socket] = None

    @property
    def closed(self) -> bool:
        return self._stop.is_set()

    def connect(self, timeout_s: float = 3.0) -> None:
        deadline = time.time() + timeout_s
        last_err: Optional[Exception] = None

        while time.time() < deadline and not self._stop.is_set():
            try:
                if _is_windows():
                    self._pipe_fh = open(self.endpoint, "r+b", buffering=0)
                else:
                    s = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
                    try:
                        s.connect(self.endpoint)
                    except OSError:
                        s.close()
                        raise
                    self._sock = s
                break
            except OSError as e:
                last_err = e
                time.sleep(0.05)

        if self._pipe_fh is None and self._sock is None:
            raise OSError(f"Failed to connect to mpv IPC endpoint {self.endpoint}: {last_err!r}")

        self._rx_thread = threading.Thread(target=self._rx_loop, name="mpv-ipc-rx", daemon=True)
        self._rx_thread.start()

    def close(self) -> None:
        self._stop.set()
        if self._sock is not None:
            try:
                self._sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            self._sock.close()
            self._sock = None
        if self._pipe_fh is not None:
            try:
                self._pipe_fh.close()
            except OSError:
                pass
            self._pipe_fh = None

    def send(self, payload: dict[str, Any]) -> None:
        line = (json.dumps(payload) + "\n").encode("utf-8")
        with self._tx_lock:
            if self._sock is not None:
                self._sock.sendall(line)
            elif self._pipe_fh is not None:
                self._pipe_fh.write(line)
                self._pipe_fh.flush()
            else:
                raise RuntimeError("mpv IPC not connected")

    def recv_nowait(self) -> Optional[dict[str, Any]]:
        try:
            return self._rx_queue.get_nowait()
        except queue.Empty:
            return None

    def _read_chunk(self) -> bytes:
        if self._sock is not None:
            return self._sock.recv(4096)
        if self._pipe_fh is not None:
            return self._pipe_fh.read(4096)
        return b""

    def _rx_loop(self) -> None:
        buf = b""
        try:
            while not self._stop.is_set():
                try:
                    chunk = self._read_chunk()
                except (OSError, ValueError):
                    break
                if not chunk:
                    break

                buf += chunk
                while b"\n" in buf:
                    line, buf = buf.split(b"\n", 1)
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        msg = json.loads(line.decode("utf-8", errors="replace"))
                    except ValueError:
                        logger.debug("Ignoring malformed mpv IPC line: %r", line[:200])
                        continue
                    if isinstance(msg, dict):
                        self._rx_queue.put(msg)
        finally:
            self._stop.set()


# -----------------------------
# Backend (mpv process + JSON protocol)
# -----------------------------

@dataclass
class MpvBackendConfig:
    mpv_path: Optional[str] = None
    ipc_endpoint: Optional[str] = None

    # Native window id of the Qt widget mpv renders into (None: own window)
    wid: Optional[int] = None
    ytdl_format: Optional[str] = None

    connect_timeout_s: float = 3.0
    cwd: Optional[str] = None


class MpvIpcBackend:
    """
    An mpv process controlled through JSON IPC.

    mpv runs idle and paused; files are loaded cued. Call process_messages()
    regularly (the adapter does it on a QTimer) to dispatch replies,
    property changes and events to the registered callbacks.
    """

    def __init__(self, config: Optional[MpvBackendConfig] = None):
        self.config = config or MpvBackendConfig()
        self._mpv_bin = _find_mpv_binary(self.config.mpv_path)
        self.ipc = self.config.ipc_endpoint or _default_ipc_endpoint()

        self._proc: Optional[subprocess.Popen] = None

        # JSON request/response correlation
        self._req_id = 0
        self._pending: dict[int, "queue.Queue[dict[str, Any]]"] = {}

        # property name -> callbacks(value); event name -> callbacks(msg)
        self._observers: dict[str, list[Callable[[Any], None]]] = {}
        self._event_handlers: dict[str, list[Callable[[dict[str, Any]], None]]] = {}

        self._time_pos_s: Optional[float] = None
        self._duration_s: Optional[float] = None
        self._paused: bool = True

        self._transport = _MpvJsonIpcTransport(self.ipc)

    # ---- lifecycle ----

    def build_args(self) -> list[str]:
        args = [
            self._mpv_bin,
            "--idle=yes",
            "--pause=yes",
            "--keep-open=no",
            "--force-window=yes",
            "--osc=no",
            "--input-default-bindings=no",
            f"--input-ipc-server={self.ipc}",
            "--terminal=no",
            "--msg-level=all=warn",
        ]
        if self.config.wid is not None:
            args.append(f"--wid={int(self.config.wid)}")
        if self.config.ytdl_format:
            args.append(f"--ytdl-format={self.config.ytdl_format}")
        return args

    def start(self) -> None:
        if self._proc is not None:
            return

        if not _is_windows():
            _remove_unix_socket_if_exists(self.ipc)

        creationflags = getattr(subprocess, "CREATE_NO_WINDOW", 0) if _is_windows() else 0
        logger.debug("Starting mpv: %s", " ".join(self.build_args()))

        self._proc = subprocess.Popen(
            self.build_args(),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            cwd=self.config.cwd or None,
            creationflags=creationflags,
        )

        self._transport.connect(timeout_s=self.config.connect_timeout_s)

        self.observe_property("time-pos", self._on_time_pos)
        self.observe_property("duration", self._on_duration)
        self.observe_property("pause", self._on_pause)

    def stop(self) -> None:
        """Stops playback and terminates the mpv process."""
        if not self._transport.closed:
            try:
                self.command("quit")
            except (OSError, RuntimeError):
                pass
        self._transport.close()

        if self._proc is not None:
            try:
                self._proc.terminate()
                self._proc.wait(timeout=2)
            except (OSError, subprocess.TimeoutExpired):
                self._proc.kill()
            self._proc = None

    def is_running(self) -> bool:
        return (
            self._proc is not None
            and self._proc.poll() is None
            and not self._transport.closed
        )

    # ---- protocol helpers ----

    def _next_id(self) -> int:
        self._req_id += 1
        return self._req_id

    def command(self, *args: Any) -> None:
        """Fire-and-forget command."""
        self._transport.send({"command": list(args)})

    def command_wait(self, *args: Any, timeout_s: float = 1.0) -> dict[str, Any]:
        """Send a command with a request_id and pump messages until its reply."""
        rid = self._next_id()
        q: "queue.Queue[dict[str, Any]]" = queue.Queue()
        self._pending[rid] = q
        self._transport.send({"command": list(args), "request_id": rid})

        deadline = time.time() + timeout_s
        while time.time() < deadline:
            self.process_messages(max_messages=50)
            try:
                return q.get_nowait()
            except queue.Empty:
                time.sleep(0.005)

        self._pending.pop(rid, None)
        raise TimeoutError(f"mpv command timed out: {args!r}")

    def get_property(self, name: str, timeout_s: float = 1.0) -> Any:
        resp = self.command_wait("get_property", name, timeout_s=timeout_s)
        if resp.get("error") == "success":
            return resp.get("data")
        return None

    def set_property(self, name: str, value: Any) -> None:
        self.command("set_property", name, value)

    def observe_property(self, name: str, on_change: Callable[[Any], None]) -> None:
        if name not in self._observers:
            self._observers[name] = []
            self.command("observe_property", self._next_id(), name)
        self._observers[name].append(on_change)

    def on_event(self, name: str, handler: Callable[[dict[str, Any]], None]) -> None:
        self._event_handlers.setdefault(name, []).append(handler)

    def process_messages(self, max_messages: int = 200) -> int:
        """
        Drain incoming messages and dispatch request replies, property-change
        events and named events (file-loaded, end-file, ...). Returns the
        number of messages handled.
        """
        handled = 0
        for _ in range(max_messages):
            msg = self._transport.recv_nowait()
            if msg is None:
                break
            handled += 1

            if "request_id" in msg:
                rid = msg.get("request_id")
                q = self._pending.pop(rid, None) if isinstance(rid, int) else None
                if q is not None:
                    q.put_nowait(msg)
                continue

            event = msg.get("event")
            if event == "property-change":
                name = msg.get("name")
                for cb in list(self._observers.get(name, [])):
                    try:
                        cb(msg.get("data"))
                    except Exception:
                        logger.exception("mpv property observer for %s failed", name)
            elif isinstance(event, str):
                for handler in list(self._event_handlers.get(event, [])):
                    try:
                        handler(msg)
                    except Exception:
                        logger.exception("mpv event handler for %s failed", event)
        return handled

    # ---- cached property handlers ----

    def _on_time_pos(self, value: Any) -> None:
        try:
            self._time_pos_s = float(value) if value is not None else None
        except (TypeError, ValueError):
            self._time_pos_s = None

    def _on_duration(self, value: Any) -> None:
        try:
            self._duration_s = float(value) if value is not None else None
        except (TypeError, ValueError):
            self._duration_s = None

    def _on_pause(self, value: Any) -> None:
        self._paused = bool(value)

    # ---- high-level controls ----

    def load(self, url: str, start_s: float, end_s: Optional[float] = None) -> None:
        """
        Replace the current file with `url`, paused at `start_s`. The `end`
        option makes mpv finish the file (end-file reason "eof") at `end_s`.
        """
        self._time_pos_s = None
        self._duration_s = None
        self.set_paused(True)
        self.set_property("start", f"{max(0.0, float(start_s)):.3f}")
        self.set_property("end", f"{float(end_s):.3f}" if end_s is not None else "none")
        self.command("loadfile", url, "replace")

    def set_paused(self, paused: bool) -> None:
        self.set_property("pause", bool(paused))

    def pause(self) -> None:
        self.set_paused(True)

    def play(self) -> None:
        self.set_paused(False)

    def seek_seconds(self, sec: float, *, exact: bool = True) -> None:
        mode = "absolute+exact" if exact else "absolute"
        self.command("seek", float(sec), mode)

    # ---- convenience getters ----

    def time_pos(self) -> Optional[float]:
        return self._time_pos_s

    def duration(self) -> Optional[float]:
        return self._duration_s

    def is_paused(self) -> bool:
        return self._paused
