from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import ValidationError

from todo_app.dependencies import get_renderer, get_service
from todo_app.rendering import Renderer
from todo_app.schemas.todo import TodoCreate, TodoOut
from todo_app.services.todo_service import TodoService

router = APIRouter()

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def _is_form(request: Request) -> bool:
    content_type = request.headers.get("content-type", "")
    return content_type.split(";")[0].strip().lower() in FORM_CONTENT_TYPES


def _validate(data: Any) -> TodoCreate:
    try:
        return TodoCreate.model_validate(data)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False, include_context=False))


async def _read_json(request: Request) -> TodoCreate:
    try:
        data = await request.json()
    except ValueError:
        raise RequestValidationError(
            [{"type": "json_invalid", "loc": ("body",), "msg": "Invalid JSON body", "input": None}]
        )
    return _validate(data)


async def _read_form(request: Request) -> TodoCreate:
    form = await request.form()
    data: Dict[str, Any] = {key: value for key, value in form.items() if isinstance(value, str)}
    return _validate(data)


@router.get("/", response_class=HTMLResponse, tags=["Views"])
async def show_index(
    service: TodoService = Depends(get_service),
    renderer: Renderer = Depends(get_renderer),
) -> Response:
    return renderer.html("index.html", await service.list_todos(), "todos")


@router.get("/todos", response_model=list[TodoOut], tags=["Todos"])
async def list_todos(
    service: TodoService = Depends(get_service),
    renderer: Renderer = Depends(get_renderer),
) -> Response:
    return renderer.json(await service.list_todos())


@router.post(
    "/todos",
    response_model=TodoOut,
    tags=["Todos"],
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {"schema": TodoCreate.model_json_schema()},
                "application/x-www-form-urlencoded": {"schema": TodoCreate.model_json_schema()},
            },
        }
    },
)
async def create_todo(
    request: Request,
    service: TodoService = Depends(get_service),
    renderer: Renderer = Depends(get_renderer),
) -> Response:
    """JSON bodies get the created todo back; form posts get the refreshed list fragment."""
    if _is_form(request):
        todo_in = await _read_form(request)
        return renderer.html("todos/list.html", await service.create_and_list(todo_in), "todos")
    todo_in = await _read_json(request)
    return renderer.json(await service.create_todo(todo_in))


@router.post("/todo", response_class=HTMLResponse, tags=["Views"])
async def create_todo_form(
    request: Request,
    service: TodoService = Depends(get_service),
    renderer: Renderer = Depends(get_renderer),
) -> Response:
    todo_in = await _read_form(request)
    return renderer.html("todos/list.html", await service.create_and_list(todo_in), "todos")


@router.get("/todos/{todo_id}", response_model=TodoOut, tags=["Todos"])
async def get_todo(
    todo_id: int,
    service: TodoService = Depends(get_service),
    renderer: Renderer = Depends(get_renderer),
) -> JSONResponse:
    return renderer.json(await service.get_todo(todo_id))


@router.post("/todos/{todo_id}/toggle", response_class=HTMLResponse, tags=["Views"])
async def toggle_status(
    todo_id: int,
    service: TodoService = Depends(get_service),
    renderer: Renderer = Depends(get_renderer),
) -> Response:
    return renderer.html("todos/todo.html", await service.toggle_todo(todo_id), "todo")
