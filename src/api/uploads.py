"""
Multipart upload helpers shared by the thumbnail and video routes.

Covers the request-side chores: bounding the body size, parsing the form,
checking the part's content type, and staging a part to a temporary file
that is removed (along with its ".processed" sibling) however the request
ends.
"""

import logging
import os
import re
import tempfile
from contextlib import contextmanager
from typing import BinaryIO, Generator, Optional

from fastapi import HTTPException, Request, status
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException
from starlette.types import Message

from ..infrastructure.video.processor import processed_path_for

logger = logging.getLogger(__name__)

TEMP_FILE_PREFIX = "tubely_upload_"
CHUNK_SIZE = 1 << 20  # 1 MiB
MAX_FORM_FIELDS = 10

_SUBTYPE_PATTERN = re.compile(r"^[a-z0-9][a-z0-9.+-]*$")


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def media_type_of(content_type: Optional[str]) -> str:
    """Lower-cased "type/subtype" with any parameters stripped."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def image_extension(content_type: Optional[str]) -> str:
    """
    File extension for an image part: the subtype of "image/<subtype>".

    Raises 400 for a missing header or anything that isn't an image.
    """
    media_type = media_type_of(content_type)
    if not media_type:
        raise _bad_request("Improper file metadata")

    parts = media_type.split("/")
    if len(parts) != 2 or parts[0] != "image" or not _SUBTYPE_PATTERN.match(parts[1]):
        logger.info("Rejected thumbnail content type", extra={"content_type": content_type})
        raise _bad_request("Invalid file metadata")

    return parts[1]


def require_mp4(content_type: Optional[str]) -> None:
    """Only MP4 video is accepted for video uploads."""
    media_type = media_type_of(content_type)
    if not media_type:
        raise _bad_request("Improper file metadata")

    if media_type != "video/mp4":
        logger.info("Rejected video content type", extra={"content_type": content_type})
        raise _bad_request("Invalid file metadata")


def check_content_length(request: Request, max_bytes: int) -> None:
    """Refuse bodies that announce more than max_bytes before reading them."""
    header = request.headers.get("content-length")
    if header is None:
        return

    try:
        length = int(header)
    except ValueError:
        raise _bad_request("Improper form body")

    if length > max_bytes:
        logger.info(
            "Rejected oversized upload",
            extra={"content_length": length, "max_bytes": max_bytes},
        )
        raise _bad_request("Improper form body")


class BodyTooLarge(Exception):
    """Raised mid-stream once a request body passes its ceiling."""
    pass


def limit_body(request: Request, max_bytes: int) -> Request:
    """
    Request over the same scope whose body stream stops at max_bytes.

    Bytes are counted as they arrive, so a body without Content-Length
    (chunked) is cut off before the form parser spools it to disk.
    """
    received = 0

    async def receive() -> Message:
        nonlocal received
        message = await request.receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > max_bytes:
                raise BodyTooLarge(f"Body exceeds {max_bytes} bytes")
        return message

    return Request(request.scope, receive)


async def read_form(request: Request, max_bytes: int) -> FormData:
    """
    Parse the multipart body.

    Starlette spools file parts to disk past 1 MiB, so at most that much of
    a part sits in memory. The body is bounded by max_bytes whether or not
    it declares a length. The caller closes the returned form.
    """
    check_content_length(request, max_bytes)

    try:
        return await limit_body(request, max_bytes).form(
            max_files=1,
            max_fields=MAX_FORM_FIELDS,
        )
    except BodyTooLarge:
        logger.info("Rejected oversized streamed upload", extra={"max_bytes": max_bytes})
        raise _bad_request("Upload too large")
    except (MultiPartException, StarletteHTTPException) as e:
        logger.info("Rejected malformed form body", extra={"error": str(e)})
        raise _bad_request("Improper form body")


def get_upload_field(form: FormData, field: str) -> UploadFile:
    value = form.get(field)
    if not isinstance(value, UploadFile):
        raise _bad_request("Couldn't read file data")
    return value


async def read_upload(upload: UploadFile, max_bytes: int) -> bytes:
    """Read a whole part into memory, 400 if it is over max_bytes."""
    data = await upload.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise _bad_request("Upload too large")
    return data


async def stage_upload(upload: UploadFile, destination: BinaryIO, max_bytes: int) -> int:
    """Copy a part to destination in chunks. Returns the byte count."""
    total = 0
    while True:
        chunk = await upload.read(CHUNK_SIZE)
        if not chunk:
            break

        total += len(chunk)
        if total > max_bytes:
            raise _bad_request("Upload too large")

        destination.write(chunk)

    return total


@contextmanager
def temporary_upload(
    suffix: str = ".mp4",
    directory: Optional[str] = None,
) -> Generator[BinaryIO, None, None]:
    """
    An open temp file for one request's payload.

    On exit the file and its ".processed" sibling are removed, whether the
    request succeeded or not.
    """
    tmp = tempfile.NamedTemporaryFile(
        prefix=TEMP_FILE_PREFIX,
        suffix=suffix,
        dir=directory,
        delete=False,
    )
    try:
        yield tmp
    finally:
        tmp.close()
        for path in (tmp.name, processed_path_for(tmp.name)):
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(
                    "Failed to remove temporary upload",
                    extra={"path": path, "error": str(e)},
                )
