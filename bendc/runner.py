"""Running compiled books with the external HVM runtime."""

from __future__ import annotations

import json
import os
import subprocess
import sys
import threading
from typing import BinaryIO, Optional, Tuple

HVM_OUTPUT_END_MARKER = "Result: "
OUT_PATH = ".out.hvm"
_CHUNK_SIZE = 1024


class HvmError(Exception):
    """Raised when the runtime cannot be run or its output cannot be read."""


def _debug_str(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def filter_hvm_output(stream: BinaryIO, output: BinaryIO) -> str:
    """Copy `stream` to `output` until the result marker, then capture the rest.

    Returns the text after the marker; raises HvmError if none was seen.
    """
    capturing = False
    parts = []
    while True:
        try:
            chunk = stream.read(_CHUNK_SIZE)
        except OSError as e:
            print(e, file=sys.stderr)
            break
        if not chunk:
            break
        text = chunk.decode("utf-8", errors="replace")
        if capturing:
            parts.append(text)
            continue
        before, marker, after = text.partition(HVM_OUTPUT_END_MARKER)
        to_write = before.encode("utf-8") if marker else chunk
        try:
            output.write(to_write)
            output.flush()
        except OSError as e:
            print(f"Error writing HVM output. {e}", file=sys.stderr)
        if marker:
            parts.append(after)
            capturing = True
    if not capturing:
        raise HvmError("Failed to parse result from HVM.")
    return "".join(parts)


def split_hvm_output(out: str) -> Tuple[str, str]:
    """Split the captured output into the result net line and the stats after it."""
    result, sep, stats = out.partition("\n")
    if not sep:
        raise HvmError(
            "Failed to parse result from HVM (unterminated result).\n"
            f"Output from HVM was:\n{_debug_str(out)}"
        )
    return result, stats


def _binary_stdout() -> BinaryIO:
    buffer = getattr(sys.stdout, "buffer", None)
    if buffer is not None:
        return buffer
    return open(sys.stdout.fileno(), "wb", closefd=False)


def run_hvm(book_text: str, cmd: str) -> str:
    """Write the book to a file, run `hvm <cmd>` on it and return its result.

    Output before the result marker is passed through to stdout.
    """
    try:
        with open(OUT_PATH, "w", encoding="utf-8") as f:
            f.write(book_text)
    except OSError as e:
        raise HvmError(str(e)) from None

    try:
        process = subprocess.Popen(["hvm", cmd, OUT_PATH], stdout=subprocess.PIPE)
    except OSError as e:
        raise HvmError(f"Failed to start hvm process.\n{e}") from None

    outcome: dict = {}
    output = _binary_stdout()

    def reader() -> None:
        try:
            outcome["result"] = filter_hvm_output(process.stdout, output)
        except HvmError as e:
            outcome["error"] = e

    thread = threading.Thread(target=reader)
    thread.start()
    process.wait()
    try:
        os.remove(OUT_PATH)
    except OSError as e:
        print(f"Error removing HVM output file. {e}", file=sys.stderr)
    thread.join()

    error: Optional[HvmError] = outcome.get("error")
    if error is not None:
        raise error
    if "result" not in outcome:
        raise HvmError("HVM output thread panicked.")
    return outcome["result"]