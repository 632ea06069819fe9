"""Fixed error responses for the request pipeline.

The pipeline answers with the standard reason phrase as a plain-text
body when nothing else produced a response: 404 when no route or static
fallback matched, 500 when the error pipeline ran out of handlers.
"""

from http import HTTPStatus

from perch.http.response import TEXT_TYPE, Response


def status_text(status: int) -> str:
    """Standard reason phrase for *status* (``404`` -> ``"Not Found"``)."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Unknown Status"


def send_error_response(response: Response, status: int) -> None:
    """Finish *response* with *status* and its reason phrase.

    No-op when the response has already ended.
    """
    if response.ended:
        return
    response.status(status).set("Content-Type", TEXT_TYPE).send(status_text(status))


def send_not_found(response: Response) -> None:
    send_error_response(response, 404)
