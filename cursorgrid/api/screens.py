from typing import List
from fastapi import APIRouter, HTTPException, Request

from cursorgrid.core.exceptions.exceptions import DomainError, UnknownScreenError
from cursorgrid.schemas.screens import (
    FilterUpdate,
    PageSizeUpdate,
    PageUpdate,
    ScreenInfo,
    ScreenResponse,
    SortUpdate,
)
from cursorgrid.services.list_screen import ListScreen, ScreenRegistry
from cursorgrid.utils.log import app_logger

router = APIRouter(prefix="/screens", tags=["List_Screens"])


def _registry(request: Request) -> ScreenRegistry:
    return request.app.state.screens


def _screen(request: Request, name: str) -> ListScreen:
    try:
        return _registry(request).get(name)
    except UnknownScreenError as e:
        raise HTTPException(status_code=404, detail=e.message)


def _response(screen: ListScreen) -> ScreenResponse:
    return ScreenResponse(view=screen.view, query=screen.query_string)


@router.get("", response_model=List[ScreenInfo])
def list_screens(request: Request) -> List[ScreenInfo]:
    """Describe every list screen: filters with their choices, sortable columns, page sizes."""
    return [
        ScreenInfo(
            name=screen.name,
            filters={k: list(v) if v is not None else None for k, v in screen.schema.filters.items()},
            sortable_fields=list(screen.schema.sortable_fields),
            default_page_size=screen.schema.default_page_size,
            page_size_options=list(screen.schema.page_size_options),
        )
        for screen in _registry(request)
    ]


@router.get("/{name}", response_model=ScreenResponse)
async def show_screen(name: str, request: Request) -> ScreenResponse:
    """Show the page described by the request's query string (page, page_size, sort, filters)."""
    screen = _screen(request, name)
    app_logger.debug("screen.show", screen=name, query=request.url.query)
    await screen.navigate(request.url.query)
    return _response(screen)


@router.post("/{name}/page", response_model=ScreenResponse)
async def change_page(name: str, payload: PageUpdate, request: Request) -> ScreenResponse:
    screen = _screen(request, name)
    try:
        await screen.set_page(payload.page)
    except DomainError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return _response(screen)


@router.post("/{name}/page-size", response_model=ScreenResponse)
async def change_page_size(name: str, payload: PageSizeUpdate, request: Request) -> ScreenResponse:
    screen = _screen(request, name)
    try:
        await screen.set_page_size(payload.page_size)
    except DomainError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return _response(screen)


@router.post("/{name}/sort", response_model=ScreenResponse)
async def change_sort(name: str, payload: SortUpdate, request: Request) -> ScreenResponse:
    screen = _screen(request, name)
    try:
        await screen.set_sort(payload.sort)
    except DomainError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return _response(screen)


@router.post("/{name}/filter", response_model=ScreenResponse)
async def change_filter(name: str, payload: FilterUpdate, request: Request) -> ScreenResponse:
    screen = _screen(request, name)
    try:
        await screen.set_filter(payload.filter)
    except DomainError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return _response(screen)


@router.post("/{name}/back", response_model=ScreenResponse)
async def go_back(name: str, request: Request) -> ScreenResponse:
    screen = _screen(request, name)
    await screen.back()
    return _response(screen)


@router.post("/{name}/forward", response_model=ScreenResponse)
async def go_forward(name: str, request: Request) -> ScreenResponse:
    screen = _screen(request, name)
    await screen.forward()
    return _response(screen)
