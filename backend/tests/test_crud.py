from datetime import timedelta

from sqlmodel import Session

from courier_dispatch import crud
from courier_dispatch.models.route_models import Route, Stop, StopStatus, StopUpdate
from tests.utils.utils import NOW, create_route_with_stops


def test_naive_utc_timestamps_are_stored_and_compared(db: Session) -> None:
    create_route_with_stops(db, "old", [(13.70, 100.50)], updated_at=NOW - timedelta(hours=2))
    create_route_with_stops(db, "new", [(13.70, 100.50)], updated_at=NOW)

    crud.touch_route(session=db, route_id="old", now=NOW + timedelta(hours=1))
    db.expire_all()

    route = db.get(Route, "old")
    assert route.updated_at == NOW + timedelta(hours=1)
    assert route.updated_at.tzinfo is None
    assert crud.list_routes_for_enrichment(session=db, updated_before=NOW + timedelta(minutes=1)) == [
        "new"
    ]


def test_update_stop_keeps_naive_eta(db: Session) -> None:
    create_route_with_stops(db, "r1", [(13.70, 100.50)])
    stop = crud.get_stop(session=db, route_id="r1", job_id="r1-j0")

    crud.update_stop(
        session=db,
        db_stop=stop,
        stop_in=StopUpdate(status=StopStatus.ARRIVED, arrived_at=NOW + timedelta(minutes=5)),
    )
    db.expire_all()

    stored = db.get(Stop, ("r1", "r1-j0"))
    assert stored.status == StopStatus.ARRIVED
    assert stored.arrived_at == NOW + timedelta(minutes=5)
    assert stored.arrived_at.tzinfo is None
