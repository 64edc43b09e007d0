"""
End to end shutdown: start the real program on a Unix socket, send it a
signal and check that it exits cleanly and removes the socket.
"""
import os
import signal
import stat
import subprocess
import sys
import time
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent


def wait_for(cond, timeout=10.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if cond():
            return True
        time.sleep(0.05)
    return False


def start(tmp_path, *args):
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(ROOT), env.get("PYTHONPATH")]))
    # run outside the repo so no .env is picked up
    return subprocess.Popen(
        [sys.executable, "-m", "sensorweb.main", "--sensor", "fake", "--interval", "0.05", *args],
        cwd=tmp_path,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
    )


def stop(proc, sig):
    proc.send_signal(sig)
    try:
        out, _ = proc.communicate(timeout=10)
    except subprocess.TimeoutExpired:
        proc.kill()
        out, _ = proc.communicate()
        pytest.fail(f"did not exit on {sig.name}:\n{out.decode(errors='replace')}")
    return out.decode(errors="replace")


@pytest.mark.parametrize("sig", [signal.SIGHUP, signal.SIGINT, signal.SIGTERM])
def test_fastcgi_exits_on_signal(tmp_path, sig):
    sock = tmp_path / "sensorsocket"
    proc = start(tmp_path, "--transport", "fastcgi", "--socket", str(sock))
    assert wait_for(sock.exists), "socket was never created"
    mode = os.stat(sock).st_mode
    assert stat.S_ISSOCK(mode)
    # nginx runs as another user and must be able to connect
    assert stat.S_IMODE(mode) == 0o666
    # let the server loop take over the signals
    time.sleep(0.5)

    out = stop(proc, sig)
    assert proc.returncode == 0, out
    assert not sock.exists()
    assert "shutting down" in out


def test_http_socket_removed_on_exit(tmp_path):
    sock = tmp_path / "sensorsocket"
    proc = start(tmp_path, "--transport", "http", "--socket", str(sock))
    assert wait_for(sock.exists), "socket was never created"
    time.sleep(0.5)

    out = stop(proc, signal.SIGHUP)
    assert proc.returncode == 0, out
    assert not sock.exists()
