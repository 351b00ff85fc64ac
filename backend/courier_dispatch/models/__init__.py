"""Model shortcuts for the FastAPI app."""

from .fleet_models import (  # noqa: F401
    Agent,
    AgentBase,
    Job,
    JobBase,
    JobStatus,
    VehicleType,
)
from .route_models import (  # noqa: F401
    RETURN_DEPOT_JOB_ID,
    Assignment,
    Route,
    RouteStatus,
    Stop,
    StopPublic,
    StopStatus,
    StopUpdate,
)
from .travel_models import TravelCacheEntry  # noqa: F401
from .optimization_models import (  # noqa: F401
    EnrichAllRequest,
    EnrichAllResult,
    EnrichRouteRequest,
    EnrichRouteResult,
    LegacyOptimizeRequest,
    LegacyOptimizeResult,
    Location,
    OptimizeRequest,
    OptimizeResult,
    SeedJobsRequest,
    SeedJobsResult,
)
