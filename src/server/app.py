# FastAPI table API: /tables/orders, /tables/customers, /tables/inmemorycustomerstats
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request, Response
from fastapi.responses import JSONResponse

from domain.models import Customer, CustomerStats, Order
from domain.schemas import CustomerData, CustomerStatsData, OrderData, Page
from server import database, repository, seed
from server.access import CustomerAccessControl, OrdersAccessControl, resolve_user_id
from server.config import settings
from server.errors import TableError
from server.tables import CustomerStatsTable, TableService, parse_if_match
from utils.logger import get_logger

_logger = get_logger(__name__)

WIRE_SCHEMAS = {
    Order: OrderData,
    Customer: CustomerData,
    CustomerStats: CustomerStatsData,
}


# -------------------
# Dependencies
# -------------------
def get_now() -> datetime:
    """Local wall-clock time; overridden in tests."""
    return datetime.now().astimezone()


async def get_conn():
    async with database.connect() as conn:
        yield conn


def caller_user_name(request: Request) -> Optional[str]:
    """
    `?UserName=` or `Authorization: Bearer <username>`.
    Placeholder authentication, never do this in a real deployment.
    """
    name = request.query_params.get("UserName")
    if name:
        return name
    authorization = request.headers.get("authorization")
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip()
    return None


async def get_user_id(request: Request, conn=Depends(get_conn)) -> str:
    # unknown users are not handled: the request fails
    return await resolve_user_id(conn, caller_user_name(request))


async def orders_service(user_id: str = Depends(get_user_id)) -> TableService:
    return TableService(repository.ORDERS, OrdersAccessControl(user_id))


async def customers_service(user_id: str = Depends(get_user_id)) -> TableService:
    return TableService(repository.CUSTOMERS, CustomerAccessControl(user_id))


async def customer_stats_service(
    user_id: str = Depends(get_user_id),
    conn=Depends(get_conn),
    now: datetime = Depends(get_now),
) -> CustomerStatsTable:
    return await CustomerStatsTable.build(conn, now)


def _as_aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# -------------------
# Routes
# -------------------
def table_router(name: str, schema, make_service, read_only: bool = False) -> APIRouter:
    router = APIRouter(prefix=f"/tables/{name}", tags=[name])
    _add_read_routes(router, schema, make_service)
    if read_only:
        _add_refused_write_routes(router, make_service)
    else:
        _add_write_routes(router, schema, make_service)
    return router


def _add_read_routes(router: APIRouter, schema, make_service) -> None:
    @router.get("", response_model=Page[schema])
    async def list_items(
        updated_since: Optional[datetime] = Query(None, alias="updatedSince"),
        include_deleted: bool = Query(False, alias="includeDeleted"),
        service=Depends(make_service),
        conn=Depends(get_conn),
    ):
        items = await service.list(conn, _as_aware(updated_since), include_deleted)
        return Page[schema](
            items=[schema.from_model(item) for item in items], count=len(items)
        )

    @router.get("/{entity_id}", response_model=schema)
    async def read_item(
        entity_id: str, service=Depends(make_service), conn=Depends(get_conn)
    ):
        return schema.from_model(await service.read(conn, entity_id))


def _add_write_routes(router: APIRouter, schema, make_service) -> None:
    @router.post("", response_model=schema, status_code=201)
    async def create_item(
        body: schema, service=Depends(make_service), conn=Depends(get_conn)
    ):
        return schema.from_model(await service.create(conn, body.to_model()))

    @router.put("/{entity_id}", response_model=schema)
    async def replace_item(
        entity_id: str,
        body: schema,
        if_match: Optional[str] = Header(None),
        service=Depends(make_service),
        conn=Depends(get_conn),
    ):
        if body.id is None:
            body = body.model_copy(update={"id": entity_id})
        entity = await service.replace(
            conn, entity_id, body.to_model(), parse_if_match(if_match)
        )
        return schema.from_model(entity)

    @router.delete("/{entity_id}", status_code=204)
    async def delete_item(
        entity_id: str,
        if_match: Optional[str] = Header(None),
        service=Depends(make_service),
        conn=Depends(get_conn),
    ):
        await service.delete(conn, entity_id, parse_if_match(if_match))
        return Response(status_code=204)


def _add_refused_write_routes(router: APIRouter, make_service) -> None:
    # the body is never parsed: every write is refused whatever it contains
    @router.post("", status_code=201)
    async def create_item(service=Depends(make_service), conn=Depends(get_conn)):
        await service.create(conn, None)

    @router.put("/{entity_id}")
    async def replace_item(
        entity_id: str, service=Depends(make_service), conn=Depends(get_conn)
    ):
        await service.replace(conn, entity_id, None)

    @router.delete("/{entity_id}", status_code=204)
    async def delete_item(
        entity_id: str, service=Depends(make_service), conn=Depends(get_conn)
    ):
        await service.delete(conn, entity_id)


management = APIRouter(prefix="/management", tags=["management"])


@management.post("/reset", status_code=204)
async def reset_database(conn=Depends(get_conn), now: datetime = Depends(get_now)):
    """Development only: drop, recreate and seed the demo rows."""
    await seed.reset(conn, now)
    return Response(status_code=204)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    async with database.connect():
        _logger.info(f"Server database ready at {database.DB_PATH}")
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="Order Worklist Tables API", lifespan=lifespan)

    @app.exception_handler(TableError)
    async def handle_table_error(request: Request, exc: TableError) -> JSONResponse:
        _logger.info(f"{request.method} {request.url.path}: {exc.status_code} {exc.detail}")
        schema = WIRE_SCHEMAS.get(type(exc.entity))
        if schema is not None:
            content = schema.from_model(exc.entity).to_wire()
        else:
            content = {"detail": exc.detail}
        return JSONResponse(status_code=exc.status_code, content=content)

    app.include_router(table_router("orders", OrderData, orders_service))
    app.include_router(table_router("customers", CustomerData, customers_service))
    app.include_router(
        table_router(
            "inmemorycustomerstats",
            CustomerStatsData,
            customer_stats_service,
            read_only=True,
        )
    )
    if settings.enable_management:
        app.include_router(management)
    return app


app = create_app()
