import httpx
from typing import Optional, List, Dict, Any
from src.config import settings
from src.shared.models.enums import DriverStatus, RideStatus
from src.shared.models.ride_dto import (
    CreateRideRequest,
    DriverRatingDraft,
    EstimateRideRequest,
    Ride,
    RideEstimate,
    RideStatusQuery,
    UpdateRideRequest,
)


class BaseClient:
    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout if timeout is not None else settings.services.HTTP_TIMEOUT
        self.client = httpx.AsyncClient(base_url=base_url, timeout=self.timeout, transport=transport)

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self.client.get(path, params=params)
        response.raise_for_status()
        return response.json()

    async def _post(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        response = await self.client.post(path, json=json)
        response.raise_for_status()
        return response.json()

    async def _put(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        response = await self.client.put(path, json=json)
        response.raise_for_status()
        return response.json()


class RideClient(BaseClient):
    """Ride service: quotes, creation, status polling and status updates."""

    def __init__(self, base_url: Optional[str] = None, **kwargs: Any):
        super().__init__(f"{base_url or settings.services.RIDE_SERVICE_URL}/rides", **kwargs)

    async def estimate(self, start_address: str, end_address: str) -> RideEstimate:
        request = EstimateRideRequest(start_address=start_address, end_address=end_address)
        data = await self._post("/estimate", json=request.model_dump(by_alias=True))
        return RideEstimate.model_validate(data)

    async def create(self, request: CreateRideRequest) -> Ride:
        data = await self._post("/", json=request.model_dump(by_alias=True))
        return Ride.model_validate(data)

    async def get_status(self, client_email: str, created_at_timestamp: int) -> Ride:
        query = RideStatusQuery(client_email=client_email, ride_created_at_timestamp=created_at_timestamp)
        data = await self._get("/status", params=query.model_dump(by_alias=True))
        return Ride.model_validate(data)

    async def update_status(self, client_email: str, created_at_timestamp: int, status: RideStatus) -> Ride:
        request = UpdateRideRequest(
            client_email=client_email,
            ride_created_at_timestamp=created_at_timestamp,
            status=status,
        )
        data = await self._put("/status", json=request.model_dump(by_alias=True, mode="json"))
        return Ride.model_validate(data)

    async def list_new(self) -> List[Ride]:
        data = await self._get("/new")
        return [Ride.model_validate(item) for item in data or []]

    async def list_for_user(self) -> List[Ride]:
        data = await self._get("/user")
        return [Ride.model_validate(item) for item in data or []]


class DriverClient(BaseClient):
    """Driver service: verification status and ratings."""

    def __init__(self, base_url: Optional[str] = None, **kwargs: Any):
        super().__init__(f"{base_url or settings.services.DRIVER_SERVICE_URL}/drivers", **kwargs)

    async def get_status(self, driver_email: str) -> DriverStatus:
        data = await self._get(f"/{driver_email}/status")
        # Сервис отдаёт либо голую строку, либо объект {"status": ...}
        if isinstance(data, dict):
            data = data.get("status")
        return DriverStatus(data)

    async def rate(self, draft: DriverRatingDraft) -> Any:
        return await self._post("/rate", json=draft.model_dump(by_alias=True))
