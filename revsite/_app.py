"""
This module implements the adapter between a request handler (usually a
``Pipeline``) and the ASGI server. It also owns the revsite logger.
"""

import sys
import json
import logging
import inspect
from . import _request
from ._request import HttpRequest

# Initialize the logger
logger = logging.getLogger("revsite")
logger.propagate = False
logger.setLevel(logging.INFO)
_handler = logging.StreamHandler(sys.stderr)
_handler.setFormatter(
    logging.Formatter(
        fmt="[%(levelname)s %(asctime)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )
)
logger.addHandler(_handler)

INTERNAL_ERROR_BODY = "Internal Server Error"


def set_log_level(level):
    """ Set the level of the revsite logger. Accepts a logging level
    int, or a name such as 'debug' or 'WARNING'.
    """
    if isinstance(level, str):
        level = level.upper()
    logger.setLevel(level)


def normalize_response(response):
    """ Normalize the given response, by always returning a 3-element tuple
    (status, headers, body). The body is not "resolved"; it is safe
    to call this function multiple times on the same response.
    """
    # Get status, headers and body from the response
    if isinstance(response, tuple):
        if len(response) == 3:
            status, headers, body = response
        elif len(response) == 2:
            status = 200
            headers, body = response
        elif len(response) == 1:
            status, headers, body = 200, {}, response[0]
        else:
            raise ValueError(f"Handler returned {len(response)}-tuple.")
    else:
        status, headers, body = 200, {}, response

    # Validate status and headers
    if not isinstance(status, int):
        raise ValueError(f"Status code must be an int, not {type(status)}")
    if not isinstance(headers, dict):
        raise ValueError(f"Headers must be a dict, not {type(headers)}")

    return status, headers, body


def guess_content_type_from_body(body):
    """ Guess the content-type based of the body.

    * "text/html" for str bodies starting with ``<!DOCTYPE html>`` or ``<html>``.
    * "text/plain" for other str bodies.
    * "application/json" for dict bodies.
    * "application/octet-stream" otherwise.
    """
    if isinstance(body, str):
        if body.lstrip().startswith(("<!DOCTYPE html>", "<!doctype html>", "<html")):
            return "text/html"
        else:
            return "text/plain"
    elif isinstance(body, dict):
        return "application/json"
    else:
        return "application/octet-stream"


def encode_body(body):
    """ Convert a response body to bytes, or leave it as-is if it is an
    async generator (a chunked response).
    """
    if isinstance(body, bytes):
        return body
    elif isinstance(body, str):
        return body.encode()
    elif isinstance(body, dict):
        try:
            return json.dumps(body).encode()
        except Exception as err:
            raise ValueError(f"Could not JSON encode body: {err}")
    elif inspect.isasyncgen(body):
        return body
    elif inspect.isgenerator(body):
        raise ValueError("Body cannot be a regular generator, use an async generator.")
    elif inspect.iscoroutine(body):
        raise ValueError("Body cannot be a coroutine, forgot await?")
    else:
        raise ValueError(f"Body cannot be {type(body)}.")


def to_asgi(handler):
    """ Convert a request handler to an ASGI application, which can be
    served with an ASGI server such as Hypercorn or Uvicorn. The handler
    is a coroutine function, or an object with an async ``__call__``
    (like a ``Pipeline``), taking a request and returning a response.
    """

    func = handler.__call__ if not inspect.isfunction(handler) else handler
    if not inspect.iscoroutinefunction(func):
        raise TypeError(
            "revsite.to_asgi() handler function must be a coroutine function."
        )

    async def application_wrapper(scope, receive, send):
        return await revsite_application(handler, scope, receive, send)

    application_wrapper.__module__ = handler.__module__
    application_wrapper.__name__ = getattr(handler, "__name__", type(handler).__name__)
    application_wrapper.__doc__ = handler.__doc__
    application_wrapper.revsite_handler = handler
    return application_wrapper


async def revsite_application(handler, scope, receive, send):

    if scope["type"] == "http":
        request = HttpRequest(scope, receive, send)
        await _handle_http(handler, request)
    elif scope["type"] == "lifespan":
        await _handle_lifespan(receive, send)
    else:
        logger.warning(f"Unknown ASGI type {scope['type']}")


async def _handle_lifespan(receive, send):
    while True:
        message = await receive()
        if message["type"] == "lifespan.startup":
            logger.info("Server is starting up")
            await send({"type": "lifespan.startup.complete"})
        elif message["type"] == "lifespan.shutdown":
            logger.info("Server is shutting down")
            await send({"type": "lifespan.shutdown.complete"})
            return
        else:
            logger.warning(f"Unknown lifespan message {message['type']}")


async def _handle_http(handler, request):

    try:

        # Call request handler to get the result
        where = "request handler"
        result = await handler(request)

        if request._app_state == _request.CONNECTING:
            # Process the handler output
            where = "processing handler output"
            status, headers, body = normalize_response(result)
            # Make sure that there is a content type (a 304 has no content)
            if "content-type" not in headers and status != 304:
                headers["content-type"] = guess_content_type_from_body(body)
            body = encode_body(body)
            # Send response. Note that per the ASGI spec, if we do not specify
            # the content-length, the server sets Transfer-Encoding to chunked.
            if isinstance(body, bytes):
                where = "sending response"
                headers.setdefault("content-length", str(len(body)))
                await request.accept(status, headers)
                await request.send(body, more=False)
            else:
                where = "sending chunked response"
                accepted = False
                async for chunk in body:
                    if not isinstance(chunk, (bytes, str)):
                        raise ValueError("Response chunks must be bytes or str.")
                    if not accepted:
                        await request.accept(status, headers)
                        accepted = True
                    await request.send(chunk)

        else:
            # If the handler accepted the request, it should use send, not return.
            if result is not None:
                raise IOError("Handlers that call request.accept() should return None.")

        # Mark end of data, if needed
        if request._app_state == _request.CONNECTED:
            where = "finalizing response"
            await request.send(b"", more=False)

    except Exception as err:
        # Process errors. We log them, and if possible send a 500. The
        # client never gets to see the details.
        error_text = f"{type(err).__name__} in {where}: {str(err)}"
        logger.error(error_text, exc_info=err)
        if request._app_state == _request.CONNECTING:
            await request.accept(500, {"content-type": "text/plain"})
            await request.send(INTERNAL_ERROR_BODY, more=False)
        elif request._app_state == _request.CONNECTED:
            await request.send(b"", more=False)  # At least close it
