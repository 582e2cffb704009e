from __future__ import annotations

from typing import List

from fastapi import APIRouter, Body, Depends, Path, Request, Response, status

from ..errors import bad_request, conflict, not_found
from ..repositories import CompletionStatus, Repository, get_repository
from ..schemas import ApiResponse, DeletedCount, TodoCreate, TodoList, TodoOut, TodoUpdate
from ..utils import api_envelope

PREFIX = "/api/v1/todos"

router = APIRouter(
    prefix=PREFIX,
    tags=["todos"],
)


def _self_link(todo_id: int) -> str:
    return f"{PREFIX}/{todo_id}"


def _get_repo(repo: Repository = Depends(get_repository)) -> Repository:
    """
    Dependency wrapper for repository to keep signatures clean.
    """
    return repo


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=ApiResponse[TodoList],
    summary="List Todos",
    description="Retrieve every todo item in creation order together with the total count.",
)
def list_todos(request: Request, repo: Repository = Depends(_get_repo)):
    items = repo.find_all()
    return api_envelope(
        request,
        {"items": items, "total": len(items)},
        links={"self": f"{PREFIX}/"},
    )


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=ApiResponse[TodoOut],
    summary="Get Todo",
    description="Get a single Todo item by ID.",
    responses={404: {"description": "Todo not found"}},
)
def get_todo(
    request: Request,
    todo_id: int = Path(..., ge=1, description="ID of the todo item"),
    repo: Repository = Depends(_get_repo),
):
    item = repo.find_by_id(todo_id)
    if item is None:
        raise not_found(f"Todo with id {todo_id} not found.")
    return api_envelope(request, item, links={"self": _self_link(todo_id)})


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=ApiResponse[TodoOut],
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo item. New items always start with done=false.",
    responses={400: {"description": "Validation error"}},
)
def create_todo(
    request: Request,
    response: Response,
    payload: TodoCreate,
    repo: Repository = Depends(_get_repo),
):
    created = repo.create(payload)
    response.headers["Location"] = _self_link(created["id"])
    return api_envelope(request, created, links={"self": _self_link(created["id"])})


# PUBLIC_INTERFACE
@router.post(
    "/batch",
    response_model=ApiResponse[List[TodoOut]],
    status_code=status.HTTP_201_CREATED,
    summary="Create Todos in Batch",
    description="Create several Todo items at once. The response keeps the input order.",
    responses={400: {"description": "Empty or invalid request body"}},
)
def create_todos_batch(
    request: Request,
    payload: List[TodoCreate] = Body(...),
    repo: Repository = Depends(_get_repo),
):
    if not payload:
        raise bad_request("Request body must contain at least one todo.")
    created = repo.create_batch(payload)
    return api_envelope(request, created, links={"self": f"{PREFIX}/batch"})


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=ApiResponse[TodoOut],
    summary="Replace Todo",
    description=(
        "Replace title, description and due_date of an existing Todo item. "
        "`done` is only changed when supplied."
    ),
    responses={404: {"description": "Todo not found"}},
)
def update_todo(
    request: Request,
    payload: TodoUpdate,
    todo_id: int = Path(..., ge=1, description="ID of the todo item"),
    repo: Repository = Depends(_get_repo),
):
    updated = repo.update(todo_id, payload)
    if updated is None:
        raise not_found(f"Todo with id {todo_id} not found.")
    return api_envelope(request, updated, links={"self": _self_link(todo_id)})


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}/complete",
    response_model=ApiResponse[TodoOut],
    summary="Complete Todo",
    description="Mark a Todo item as done. Completing an item twice is a conflict.",
    responses={
        404: {"description": "Todo not found"},
        409: {"description": "Todo already completed"},
    },
)
def complete_todo(
    request: Request,
    todo_id: int = Path(..., ge=1, description="ID of the todo item"),
    repo: Repository = Depends(_get_repo),
):
    result = repo.try_complete(todo_id)
    if result.status is CompletionStatus.NOT_FOUND:
        raise not_found(f"Todo with id {todo_id} not found.")
    if result.status is CompletionStatus.ALREADY_DONE:
        raise conflict(f"Todo with id {todo_id} is already completed.")
    return api_envelope(request, result.todo, links={"self": _self_link(todo_id)})


# PUBLIC_INTERFACE
@router.delete(
    "/completed",
    response_model=ApiResponse[DeletedCount],
    summary="Delete Completed Todos",
    description="Delete every Todo item marked as done and report how many were removed.",
)
def delete_completed_todos(request: Request, repo: Repository = Depends(_get_repo)):
    deleted = repo.delete_completed()
    return api_envelope(
        request,
        {"deleted_count": deleted, "message": f"{deleted} completed todo(s) deleted."},
        links={"self": f"{PREFIX}/completed", "todos": f"{PREFIX}/"},
    )


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Todo",
    description="Delete a Todo item by ID.",
    responses={
        204: {"description": "Todo deleted"},
        404: {"description": "Todo not found"},
    },
)
def delete_todo(
    todo_id: int = Path(..., ge=1, description="ID of the todo item"),
    repo: Repository = Depends(_get_repo),
) -> Response:
    """
    Delete a Todo. Returns 204 on success, 404 if not found.
    """
    if not repo.delete(todo_id):
        raise not_found(f"Todo with id {todo_id} not found.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
