import os
from unittest import mock

import pytest

from fzfterm.tui.tty import CONSOLE_DEVICE, open_tty, tty_in, tty_out, ttyname


def test_ttyname_is_empty_or_existing_device_path():
    name = ttyname()
    assert name == "" or (name.startswith("/dev/") and os.path.exists(name))


def test_open_tty_raises_when_nothing_opens():
    with mock.patch("os.open", side_effect=OSError("denied")):
        with pytest.raises(OSError, match="failed to open /dev/tty"):
            open_tty(os.O_RDONLY)


def test_tty_in_reads_from_opened_device():
    r, w = os.pipe()
    try:
        with mock.patch("os.open", return_value=r) as opener:
            f = tty_in()
        opener.assert_called_once_with(CONSOLE_DEVICE, os.O_RDONLY)
        os.write(w, b"k")
        assert f.read(1) == b"k"
        f.close()
    finally:
        os.close(w)


def test_tty_out_writes_to_opened_device():
    r, w = os.pipe()
    try:
        with mock.patch("os.open", return_value=w) as opener:
            f = tty_out()
        opener.assert_called_once_with(CONSOLE_DEVICE, os.O_WRONLY)
        assert f.writable() is True
        assert f.readable() is False
        assert f.write(b"xyz") == 3
        f.close()
        assert os.read(r, 10) == b"xyz"
    finally:
        os.close(r)


def test_open_tty_read_write_mode_is_readable_and_writable():
    r, w = os.pipe()
    try:
        with mock.patch("os.open", return_value=r):
            f = open_tty(os.O_RDWR)
        assert f.readable() and f.writable()
        f.close()
    finally:
        os.close(w)