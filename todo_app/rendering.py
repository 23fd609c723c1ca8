import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import HTMLResponse, JSONResponse
from jinja2 import TemplateError
from starlette.templating import Jinja2Templates

from todo_app.errors import RenderError, TodoError, TodoNotFound
from todo_app.results import Failure, Result

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

ERROR_PAGE = """<html>
    <head>
        <title>Oops.</title>
    </head>
    <body>
        <h1>Something really bad happened</h1>
    </body>
</html>"""

NOT_FOUND_PAGE = """<html>
    <head>
        <title>Not found</title>
    </head>
    <body>
        <h1>That todo does not exist</h1>
    </body>
</html>"""


def status_for(error: TodoError) -> int:
    if isinstance(error, TodoNotFound):
        return 404
    return 500


class Renderer:
    """
    Turns a Result into the final response, as JSON or as HTML.

    The HTML path renders the whole template to a string before building
    the response, so a failing template yields the static error page and
    never a truncated one.
    """

    def __init__(self, templates: Optional[Jinja2Templates] = None):
        self.templates = templates or Jinja2Templates(directory=str(TEMPLATES_DIR))

    def render(self, name: str, context: Mapping[str, Any]) -> str:
        try:
            return self.templates.get_template(name).render(**context)
        except TemplateError as exc:
            raise RenderError(f"cannot render {name}: {exc}") from exc

    def json(self, result: Result, status_code: int = 200) -> JSONResponse:
        if isinstance(result, Failure):
            return JSONResponse(
                status_code=status_for(result.error),
                content={"error": str(result.error)},
            )
        return JSONResponse(status_code=status_code, content=jsonable_encoder(result.payload))

    def html(self, template: str, result: Result, context_key: str) -> HTMLResponse:
        if isinstance(result, Failure):
            status = status_for(result.error)
            body = NOT_FOUND_PAGE if status == 404 else ERROR_PAGE
            return HTMLResponse(body, status_code=status)
        try:
            body = self.render(template, {context_key: result.payload})
        except RenderError as exc:
            logger.error("%s", exc)
            return HTMLResponse(ERROR_PAGE, status_code=500)
        return HTMLResponse(body)
