from fastapi import APIRouter, Depends, HTTPException, Request, status

from coinfolio.errors import NotFound, PersistenceError, UpstreamUnavailable, ValidationError
from coinfolio.pricing.valuation import value_portfolio
from coinfolio.schemas.asset import CoinSummary
from coinfolio.schemas.portfolio import Holding, HoldingRequest, PortfolioValuation
from coinfolio.schemas.price import PriceQuote
from coinfolio.services import Services
from coinfolio.symbols import normalize_symbol

router = APIRouter()


def get_services(request: Request) -> Services:
    return request.app.state.services


def _persistence_failed(exc: PersistenceError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"message": "Holdings could not be saved.", "error": str(exc)},
    )


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/coins", response_model=list[CoinSummary])
async def list_coins(services: Services = Depends(get_services)) -> list[CoinSummary]:
    directory = services.directory
    records = await directory.list()
    if not records and directory.last_error is not None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Coin directory is unavailable.", "error": str(directory.last_error)},
        )
    return [
        CoinSummary(symbol=record.symbol, name=record.name, id=record.id, image=record.image)
        for record in records
    ]


@router.get("/price/{symbol}", response_model=PriceQuote)
async def get_price(symbol: str, services: Services = Depends(get_services)) -> PriceQuote:
    try:
        return await services.resolver.get_price(symbol)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except NotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except UpstreamUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": str(exc), "rate_limited": exc.rate_limited},
        ) from exc


@router.get("/portfolio", response_model=list[Holding])
async def list_portfolio(services: Services = Depends(get_services)) -> list[Holding]:
    return services.holdings.list()


@router.get("/portfolio/value", response_model=PortfolioValuation)
async def portfolio_value(services: Services = Depends(get_services)) -> PortfolioValuation:
    return await value_portfolio(
        services.holdings.list(),
        services.resolver,
        services.settings.upstream.vs_currency,
    )


@router.post("/portfolio", response_model=list[Holding])
async def upsert_holding(
    payload: HoldingRequest, services: Services = Depends(get_services)
) -> list[Holding]:
    holdings = services.holdings
    try:
        async with holdings.transaction():
            holdings.upsert(payload.symbol, payload.amount)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise _persistence_failed(exc) from exc
    return holdings.list()


@router.delete("/portfolio/{symbol}", response_model=list[Holding])
async def remove_holding(symbol: str, services: Services = Depends(get_services)) -> list[Holding]:
    holdings = services.holdings
    try:
        async with holdings.transaction():
            if not holdings.remove(symbol):
                raise NotFound(f"{normalize_symbol(symbol)} is not in the portfolio.")
    except NotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise _persistence_failed(exc) from exc
    return holdings.list()
