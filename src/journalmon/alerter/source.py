"""Log sources that feed raw journal lines to the monitor.

Sources read on a background thread into a queue so the driver can wait with
a timeout: it keeps ticking (and noticing shutdown) while the journal is quiet.
"""

import queue
import subprocess
import sys
import threading
from abc import ABC, abstractmethod
from collections import deque
from pathlib import Path
from typing import IO, Final

import structlog

log = structlog.get_logger()


class _EndOfStream:
    def __repr__(self) -> str:
        return "END_OF_STREAM"


END_OF_STREAM: Final = _EndOfStream()


class SourceError(Exception):
    """The log source could not be started."""


class LogSource(ABC):
    """A stream of raw log lines."""

    @abstractmethod
    def open(self) -> None:
        """Start producing lines.

        Raises:
            SourceError: If the source can't be opened
        """

    @abstractmethod
    def next_record(self, timeout: float | None = None) -> bytes | _EndOfStream | None:
        """Wait for the next line.

        Returns:
            The raw line, END_OF_STREAM once the source is exhausted or closed,
            or None if nothing arrived within ``timeout`` seconds
        """

    @abstractmethod
    def close(self) -> None:
        """Stop the source.

        Lines already buffered are still returned by next_record(), without
        waiting, followed by END_OF_STREAM.
        """

    @property
    def failed(self) -> bool:
        """True if the source ended because of an error rather than EOF or close()."""
        return False


class StreamSource(LogSource):
    """Reads lines from a binary stream on a daemon thread."""

    def __init__(self) -> None:
        self._queue: queue.Queue[bytes | _EndOfStream] = queue.Queue(maxsize=10_000)
        self._reader: threading.Thread | None = None
        self._closed = threading.Event()
        self._finished = False

    def _start_reader(self, stream: IO[bytes], name: str) -> None:
        self._reader = threading.Thread(
            target=self._read_loop, args=(stream,), name=name, daemon=True
        )
        self._reader.start()

    def _read_loop(self, stream: IO[bytes]) -> None:
        try:
            for line in iter(stream.readline, b""):
                self._queue.put(line)
                if self._closed.is_set():
                    break
        except (OSError, ValueError) as e:
            # ValueError: stream closed underneath us by close()
            if not self._closed.is_set():
                log.error("Log source read failed", error=str(e))
        finally:
            self._queue.put(END_OF_STREAM)

    def next_record(self, timeout: float | None = None) -> bytes | _EndOfStream | None:
        if self._finished:
            return END_OF_STREAM
        closed = self._closed.is_set()
        try:
            item = self._queue.get(block=not closed, timeout=timeout)
        except queue.Empty:
            if closed:
                self._finished = True
                return END_OF_STREAM
            return None
        if item is END_OF_STREAM:
            self._finished = True
        return item

    def close(self) -> None:
        self._closed.set()


class JournalSource(StreamSource):
    """Follows the systemd journal through ``journalctl -f -o json``."""

    def __init__(self, min_priority: int = 3, journalctl: str = "journalctl"):
        super().__init__()
        self.args = [
            journalctl,
            "--follow",
            f"--priority={min_priority}",
            "--output=json",
            "--no-pager",
            "--lines=0",
        ]
        self._process: subprocess.Popen[bytes] | None = None
        self._stderr_reader: threading.Thread | None = None
        self._stderr_tail: deque[str] = deque(maxlen=20)

    def open(self) -> None:
        try:
            self._process = subprocess.Popen(
                self.args,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
            )
        except OSError as e:
            raise SourceError(f"failed to start {self.args[0]}: {e}") from e

        assert self._process.stdout is not None
        assert self._process.stderr is not None
        log.info("Following journal", command=" ".join(self.args), pid=self._process.pid)
        self._start_reader(self._process.stdout, "journal-reader")
        self._stderr_reader = threading.Thread(
            target=self._stderr_loop,
            args=(self._process.stderr,),
            name="journal-stderr",
            daemon=True,
        )
        self._stderr_reader.start()

    def _stderr_loop(self, stream: IO[bytes]) -> None:
        # Drained continuously so a chatty journalctl never blocks on a full pipe
        try:
            for raw in iter(stream.readline, b""):
                text = raw.decode(errors="replace").rstrip()
                if text:
                    self._stderr_tail.append(text)
                    log.warning("journalctl stderr", line=text[:500])
        except (OSError, ValueError) as e:
            log.debug("journalctl stderr closed", error=str(e))

    def close(self) -> None:
        super().close()
        if self._process is None or self._process.poll() is not None:
            return
        self._process.terminate()
        try:
            self._process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            log.warning("journalctl did not exit, killing", pid=self._process.pid)
            self._process.kill()
            self._process.wait()

    @property
    def failed(self) -> bool:
        if self._process is None or self._closed.is_set():
            return False
        try:
            returncode = self._process.wait(timeout=1)
        except subprocess.TimeoutExpired:
            return False
        if returncode == 0:
            return False
        if self._stderr_reader is not None:
            self._stderr_reader.join(timeout=1)
        log.error(
            "journalctl exited",
            returncode=returncode,
            stderr="\n".join(self._stderr_tail)[-500:],
        )
        return True


class FileSource(StreamSource):
    """Reads journal JSON lines from a file, or stdin when the path is ``-``.

    Useful for replaying an export or piping ``journalctl -o json`` from a
    remote host.
    """

    def __init__(self, path: Path | str):
        super().__init__()
        self.path = str(path)
        self._stream: IO[bytes] | None = None

    def open(self) -> None:
        if self.path == "-":
            self._stream = sys.stdin.buffer
        else:
            try:
                self._stream = open(self.path, "rb")
            except OSError as e:
                raise SourceError(f"cannot open {self.path}: {e.strerror}") from e
        log.info("Reading records", path=self.path)
        self._start_reader(self._stream, "file-reader")

    def close(self) -> None:
        super().close()
        if self._stream is not None and self._stream is not sys.stdin.buffer:
            self._stream.close()
