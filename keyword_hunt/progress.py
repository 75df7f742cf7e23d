"""
Streaming progress protocol.

Long pipelines report what they are doing as a sequence of
``ProgressEvent`` objects written to a writer.  Over HTTP every event is
one line of JSON (NDJSON) in a ``text/plain`` streaming response:

    {"type": "start:similarApps", "step": 1, "totalSteps": 6, "message": "..."}
    {"type": "end:similarApps", "step": 1, "totalSteps": 6, "data": [...]}
    ...
    {"type": "finalCompetitors", "step": 5, "totalSteps": 6, "data": [...]}

``start:<op>``/``end:<op>`` bracket one step; bare names (``finalKeywords``,
``error``, ``changeStrategy``, ``process:scoreKeyword``, ``log``) are point
events.  An ``error`` event is always followed by the stream failing.
"""

import codecs
import json
import logging
import queue
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from django.core.serializers.json import DjangoJSONEncoder
from django.db import connections
from django.http import StreamingHttpResponse

from .errors import PipelineCancelledError, wrap_error

logger = logging.getLogger(__name__)


@dataclass
class ProgressEvent:
    type: str
    step: int | None = None
    total_steps: int | None = None
    message: str | None = None
    data: Any = None

    def to_dict(self) -> dict:
        result = {"type": self.type}
        if self.step is not None:
            result["step"] = self.step
        if self.total_steps is not None:
            result["totalSteps"] = self.total_steps
        if self.message is not None:
            result["message"] = self.message
        if self.data is not None:
            result["data"] = self.data
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), cls=ProgressEncoder, ensure_ascii=False)


class ProgressEncoder(DjangoJSONEncoder):
    """Serializes dataclasses and models that expose ``to_dict``/``as_dict``."""

    def default(self, o):
        if hasattr(o, "to_dict"):
            return o.to_dict()
        if hasattr(o, "as_dict"):
            return o.as_dict()
        return super().default(o)


class Progress:
    """
    Step bookkeeping for one pipeline run.

    ``writer`` is anything with ``write(event)``; it may be None when the
    caller does not care about progress.  If the writer has been cancelled
    (client went away) the next ``start`` raises PipelineCancelledError.
    """

    def __init__(self, writer=None, total_steps: int | None = None):
        self.writer = writer
        self.total_steps = total_steps
        self.step = 0

    @property
    def cancelled(self) -> bool:
        return bool(getattr(self.writer, "cancelled", False))

    def check_cancelled(self):
        if self.cancelled:
            raise PipelineCancelledError()

    def add_step(self):
        if self.total_steps is not None:
            self.total_steps += 1

    def skip_step(self):
        self.step += 1

    def emit(self, type_: str, message: str | None = None, data: Any = None, counted: bool = True):
        if self.writer is None:
            return
        event = ProgressEvent(
            type=type_,
            step=self.step if counted and self.total_steps is not None else None,
            total_steps=self.total_steps if counted else None,
            message=message,
            data=data,
        )
        self.writer.write(event)

    def start(self, operation: str, message: str | None = None, advance: bool = True):
        self.check_cancelled()
        if advance:
            self.step += 1
        self.emit(f"start:{operation}", message=message)

    def end(self, operation: str, data: Any = None):
        self.emit(f"end:{operation}", data=data)

    def log(self, message: str):
        logger.info(message)
        self.emit("log", message=message, counted=False)


@contextmanager
def reporting_errors(progress: Progress, message: str | None = None):
    """
    Emit an ``error`` event for anything raised inside, then re-raise it.

    AppErrors propagate unchanged; other exceptions become UnknownError
    keeping the original message.  ``message`` replaces the event message
    for errors that are not AppErrors.  Nested blocks report an error once.
    """
    try:
        yield
    except PipelineCancelledError:
        raise
    except Exception as e:
        error = wrap_error(e)
        if getattr(error, "reported", False):
            raise
        if error is e:
            logger.error(f"Pipeline failed: {error.code.value} {error.message}")
            event_message = error.message
        else:
            logger.exception(f"Pipeline failed: {e}")
            event_message = message or error.message
        progress.emit("error", message=event_message, data=error.to_dict(), counted=False)
        error.reported = True
        if error is e:
            raise
        raise error from e


# --------------------------------------------------------------------------- #
# Writers and streaming
# --------------------------------------------------------------------------- #


class CollectingWriter:
    """Keeps events in memory.  Used when a pipeline runs outside a stream."""

    cancelled = False

    def __init__(self):
        self.events: list[ProgressEvent] = []

    def write(self, event: ProgressEvent):
        self.events.append(event)

    def types(self) -> list[str]:
        return [e.type for e in self.events]


class QueueWriter:
    """Thread-safe writer feeding a queue consumed by ``ProgressStream``."""

    _DONE = object()

    def __init__(self):
        self._queue = queue.Queue()
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self):
        self._cancelled.set()

    def write(self, event: ProgressEvent):
        # Nothing is emitted once the consumer is gone.
        if not self.cancelled:
            self._queue.put(event)

    def close(self):
        self._queue.put(self._DONE)

    def __iter__(self):
        while True:
            item = self._queue.get()
            if item is self._DONE:
                return
            yield item


class ProgressStream:
    """
    Run ``fn(*args, writer=..., **kwargs)`` on a worker thread and iterate
    over its progress events as NDJSON lines.

    Closing the iterator early (client disconnect) cancels the writer so the
    pipeline stops at its next step.  If the pipeline raised, the exception
    is re-raised after the last line so the HTTP stream ends in error.
    """

    def __init__(self, fn, *args, **kwargs):
        self.fn = fn
        self.args = args
        self.kwargs = kwargs
        self.error: BaseException | None = None

    def _run(self, writer: QueueWriter):
        try:
            self.fn(*self.args, writer=writer, **self.kwargs)
        except PipelineCancelledError:
            logger.info(f"{getattr(self.fn, '__name__', 'pipeline')} cancelled by client")
        except Exception as e:
            self.error = e
        finally:
            connections.close_all()
            writer.close()

    def __iter__(self):
        writer = QueueWriter()
        thread = threading.Thread(
            target=self._run,
            args=(writer,),
            name=f"progress-{getattr(self.fn, '__name__', 'pipeline')}",
            daemon=True,
        )
        thread.start()
        try:
            for event in writer:
                yield event.to_json() + "\n"
        finally:
            writer.cancel()
        thread.join()
        if self.error is not None:
            raise self.error


def streaming_response(stream) -> StreamingHttpResponse:
    response = StreamingHttpResponse(stream, content_type="text/plain; charset=utf-8")
    response["Cache-Control"] = "no-cache"
    response["X-Accel-Buffering"] = "no"
    return response


def iter_events(chunks):
    """
    Decode a stream of NDJSON chunks (bytes or str) into event dicts.

    Partial lines are buffered until their newline arrives.  Lines that are
    not valid JSON are logged and skipped.
    """
    decoder = codecs.getincrementaldecoder("utf-8")()
    buffer = ""
    for chunk in chunks:
        if isinstance(chunk, bytes):
            chunk = decoder.decode(chunk)
        buffer += chunk
        *lines, buffer = buffer.split("\n")
        for line in lines:
            event = _parse_line(line)
            if event is not None:
                yield event
    event = _parse_line(buffer)
    if event is not None:
        yield event


def _parse_line(line: str):
    line = line.strip()
    if not line:
        return None
    try:
        return json.loads(line)
    except ValueError:
        logger.warning(f"Skipping malformed progress line: {line[:200]}")
        return None
