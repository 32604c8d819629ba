"""
Small request-introspection endpoints.

    GET /               → 200, empty
    GET /echo/:str      → 200, the parameter as text/plain
    GET /user-agent     → 200, the User-Agent header as text/plain;
                          404 when it is missing or empty
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus

NO_USER_AGENT = "No user-agent header found."


def index(request: HTTPRequest, response: HTTPResponse) -> None:
    response.status(HTTPStatus.OK).send()


def echo(request: HTTPRequest, response: HTTPResponse) -> None:
    response.status(HTTPStatus.OK).send(request.params["str"])


def user_agent(request: HTTPRequest, response: HTTPResponse) -> None:
    agent = request.user_agent
    if not agent:
        response.status(HTTPStatus.NOT_FOUND).send(NO_USER_AGENT)
        return

    response.status(HTTPStatus.OK).send(agent)
