"""Starting and stopping the bundled browser helper executable."""

from __future__ import annotations

import logging
import os
import platform
import subprocess
import threading
import time
from typing import IO, Any, List, Optional, Union

from .inited import add_exited, add_initialized

log = logging.getLogger(__name__)

STARTUP_WAIT = 5.0

_process: Optional[subprocess.Popen] = None

Output = Union[None, int, IO[Any]]


class HelperError(RuntimeError):
    """The helper cannot run on this platform."""


def app_path(system: Optional[str] = None, machine: Optional[str] = None) -> str:
    """Relative path of the helper executable for the given (or current) platform."""
    system = (system or platform.system()).lower()
    machine = (machine or platform.machine()).lower()
    if system == "linux":
        if machine.startswith("arm") or machine == "aarch64":
            return "bin/linux/helper-arm64"
        return "bin/linux/helper"
    if system == "darwin":
        return "bin/osx/helper"
    if system == "windows":
        return "bin/windows/helper.exe"
    raise HelperError(f"Unsupported platform: {system}")


def _watch(process: subprocess.Popen) -> None:
    code = process.wait()
    if code != 0 and _process is process:
        log.critical("executable file error: exit status %s", code)


def exec_helper(
    port: Union[str, int],
    proxies: str = "",
    stdout: Output = None,
    stderr: Output = None,
) -> subprocess.Popen:
    """Start the helper on ``port``; output is inherited unless given. Waits for it to start."""
    global _process
    app = app_path()
    if not os.path.exists(app):
        raise FileNotFoundError(f"executable file not exists: {app}")

    args: List[str] = [app, "--port", str(port)]
    if proxies:
        args += ["--proxies", proxies]

    process = subprocess.Popen(args, stdout=stdout, stderr=stderr)
    _process = process
    threading.Thread(target=_watch, args=(process,), daemon=True).start()

    time.sleep(STARTUP_WAIT)
    log.info("helper exec running ...")
    return process


def exit_helper(env: Any = None) -> None:
    """Kill the helper started by :func:`exec_helper`, if any."""
    global _process
    process = _process
    if process is None:
        return
    _process = None
    process.kill()
    process.wait()


@add_initialized
def _start_helper(env: Any) -> None:
    if not env.get_bool("browser-less.enabled"):
        return
    port = env.get_string("browser-less.port")
    if port == "":
        return
    exec_helper(port, env.get_string("server.proxied"))
    add_exited(exit_helper)