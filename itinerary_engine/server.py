"""
itinerary_engine/server.py
--------------------------
HTTP surface over the engine for the assistant tool dispatcher.

Error mapping:
  ValidationError   → 422  {"detail", "field"}
  NotFoundError     → 404  {"detail", "valid_dates"}
  PersistenceError  → 503  {"detail"}
  SlotFailure       → 409  {"detail", "conflicts", "suggestions"}
  provider failure  → 502

Run:  python -m itinerary_engine.server
"""

from __future__ import annotations
from dataclasses import asdict
from typing import Any, Dict, List, Optional

import requests
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from itinerary_engine import config
from itinerary_engine.errors import NotFoundError, PersistenceError, ValidationError
from itinerary_engine.log import get_logger
from itinerary_engine.modules.booking.urgency_analyzer import (
    BookingUrgencyAnalyzer,
    ReminderScope,
    ReminderSettings,
)
from itinerary_engine.modules.group.preference_aggregator import PreferenceAggregator
from itinerary_engine.modules.planning.day_sequencer import (
    DataLossDecision,
    DaySequencer,
    LossAction,
    find_day,
)
from itinerary_engine.modules.scheduling.itinerary_editor import EditResult, ItineraryEditor
from itinerary_engine.modules.scheduling.slot_allocator import (
    SchedulingPreferences,
    TimeOfDay,
    find_time_slots,
)
from itinerary_engine.modules.storage.trip_store import InMemoryTripStore, TripStore
from itinerary_engine.modules.tool_usage.weather_tool import WeatherTool
from itinerary_engine.modules.weather.suitability_scorer import SuitabilityScorer
from itinerary_engine.schemas.booking import ReminderStatus
from itinerary_engine.schemas.itinerary import Activity, Day
from itinerary_engine.schemas.preferences import AggregationMode, ResolutionPolicy
from itinerary_engine.schemas.records import (
    ActivityRecord,
    PreferenceRecord,
    TripRecord,
    WeatherRecord,
)
from itinerary_engine.schemas.weather import WeatherCondition

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Request bodies
# ─────────────────────────────────────────────────────────────────────────────

class DecisionRequest(BaseModel):
    action: LossAction
    target_date: Optional[str] = None


class ResequenceRequest(BaseModel):
    trip: TripRecord
    decisions: Dict[str, DecisionRequest] = {}   # keyed by guarded day id


class AddActivityRequest(BaseModel):
    activity: ActivityRecord
    requested_time: Optional[str] = None
    auto_optimize: bool = True
    early_bird: bool = False
    night_owl: bool = False


class TimeSlotRequest(BaseModel):
    duration_minutes: int = Field(ge=15, le=480)
    preferred_time_of_day: TimeOfDay = TimeOfDay.ANY
    avoid_meal_times: bool = True
    buffer_minutes: int = Field(default=config.BUFFER_MINUTES, ge=0)
    early_bird: bool = False
    night_owl: bool = False
    conditions: Optional[WeatherCondition] = None


class ActivityChanges(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    start_time: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    category: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    booking_required: Optional[bool] = None
    booking_url: Optional[str] = None


class MoveActivityRequest(BaseModel):
    to_date: str
    requested_time: Optional[str] = None
    auto_optimize: bool = True


class DuplicateActivityRequest(BaseModel):
    target_date: Optional[str] = None
    requested_time: Optional[str] = None
    auto_optimize: bool = True


class WeatherScoreRequest(BaseModel):
    weather: Optional[WeatherRecord] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    group: Optional[List[PreferenceRecord]] = None


class ReminderRequest(BaseModel):
    scope: ReminderScope = ReminderScope.TRIP
    activity_id: Optional[str] = None
    enable_auto_reminders: bool = True
    reminder_days_before: List[int] = Field(default_factory=lambda: list(config.REMINDER_DAYS_BEFORE))
    dietary: List[str] = []


class ReminderStatusRequest(BaseModel):
    status: ReminderStatus


class GroupRequest(BaseModel):
    travelers: List[PreferenceRecord]
    mode: AggregationMode = AggregationMode.INCLUSIVE
    policy: ResolutionPolicy = ResolutionPolicy.ACCOMMODATE_ALL


# ─────────────────────────────────────────────────────────────────────────────
# Serialisation
# ─────────────────────────────────────────────────────────────────────────────

def activity_json(activity: Activity) -> dict[str, Any]:
    return jsonable_encoder({**asdict(activity), "end_time": activity.end_time})


def day_json(day: Day) -> dict[str, Any]:
    data = jsonable_encoder(asdict(day))
    data["activities"] = [activity_json(a) for a in day.sorted_activities()]
    return data


def edit_json(result: EditResult) -> dict[str, Any]:
    placement = result.placement
    return {
        "day":            day_json(result.day),
        "activity":       activity_json(result.activity) if result.activity else None,
        "activities":     [activity_json(a) for a in result.activities],
        "warnings":       result.warnings,
        "suggestions":    placement.suggestions if placement else [],
        "optimized_time": placement.optimized_time if placement else None,
        "version":        result.version,
    }


# ─────────────────────────────────────────────────────────────────────────────
# App factory
# ─────────────────────────────────────────────────────────────────────────────

def create_app(store: TripStore | None = None, weather_tool: WeatherTool | None = None) -> FastAPI:
    store = store if store is not None else InMemoryTripStore()
    weather_tool = weather_tool or WeatherTool()
    sequencer = DaySequencer()
    editor = ItineraryEditor(store)
    scorer = SuitabilityScorer()
    analyzer = BookingUrgencyAnalyzer(sink=store)
    aggregator = PreferenceAggregator()

    app = FastAPI(title="Itinerary Engine API")

    # ── Error mapping ─────────────────────────────────────────────────────────

    @app.exception_handler(ValidationError)
    async def on_validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=422, content={"detail": str(exc), "field": exc.field})

    @app.exception_handler(NotFoundError)
    async def on_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc), "valid_dates": exc.valid_dates})

    @app.exception_handler(PersistenceError)
    async def on_persistence_error(request: Request, exc: PersistenceError):
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(requests.RequestException)
    async def on_provider_error(request: Request, exc: requests.RequestException):
        logger.error("Weather provider failed: %s", exc)
        return JSONResponse(status_code=502, content={"detail": "weather provider unavailable"})

    def edit_response(result: EditResult):
        if not result.success:
            failure = result.placement.failure
            return JSONResponse(status_code=409, content={
                "detail":      failure.message,
                "conflicts":   [activity_json(a) for a in failure.conflicts],
                "warnings":    failure.warnings,
                "suggestions": failure.suggestions,
            })
        return edit_json(result)

    # ── Routes ────────────────────────────────────────────────────────────────

    @app.get("/")
    async def root():
        return {"message": "Itinerary Engine is running"}

    @app.post("/trips")
    def create_trip(body: TripRecord):
        trip = body.to_domain()
        days = sequencer.sequence(trip)
        store.save_trip(trip)
        store.save_days(trip.id, days)
        return {"trip_id": trip.id, "days": [day_json(d) for d in days]}

    @app.get("/trips/{trip_id}/days")
    def list_days(trip_id: str):
        store.get_trip(trip_id)
        return {"days": [day_json(d) for d in store.get_days(trip_id)]}

    @app.put("/trips/{trip_id}/dates")
    def change_dates(trip_id: str, body: ResequenceRequest):
        if body.trip.id != trip_id:
            raise ValidationError("trip id in body does not match the path", field="trip.id")
        store.get_trip(trip_id)
        trip = body.trip.to_domain()
        result = sequencer.resequence(trip, store.get_days(trip_id))

        if result.guard.requires_resolution:
            if not body.decisions:
                return JSONResponse(status_code=200, content={
                    "requires_resolution": True,
                    "affected_days":       [day_json(d) for d in result.guard.affected_days],
                    "days":                [day_json(d) for d in result.days],
                })
            decisions = {
                day_id: DataLossDecision(action=d.action, target_date=d.target_date)
                for day_id, d in body.decisions.items()
            }
            result = sequencer.resolve_data_loss(result, decisions)

        days = result.days + result.kept
        store.save_trip(trip)
        store.save_days(trip_id, days)
        return {
            "requires_resolution": False,
            "days":                [day_json(d) for d in result.days],
            "kept":                [day_json(d) for d in result.kept],
            "warnings":            result.warnings,
            "created":             [d.date_str for d in result.created],
            "discarded":           [d.date_str for d in result.discarded],
        }

    @app.post("/trips/{trip_id}/days/{day_date}/activities")
    def add_activity(trip_id: str, day_date: str, body: AddActivityRequest):
        preferences = SchedulingPreferences(early_bird=body.early_bird, night_owl=body.night_owl)
        result = editor.add_activity(
            trip_id, day_date, body.activity.to_domain(),
            requested_time=body.requested_time,
            auto_optimize=body.auto_optimize,
            preferences=preferences,
        )
        return edit_response(result)

    @app.patch("/trips/{trip_id}/days/{day_date}/activities/{activity_id}")
    def update_activity(trip_id: str, day_date: str, activity_id: str, body: ActivityChanges):
        changes = body.model_dump(exclude_unset=True)
        return edit_json(editor.update_activity(trip_id, day_date, activity_id, **changes))

    @app.delete("/trips/{trip_id}/days/{day_date}/activities/{activity_id}")
    def remove_activity(trip_id: str, day_date: str, activity_id: str):
        return edit_json(editor.remove_activity(trip_id, day_date, activity_id))

    @app.post("/trips/{trip_id}/days/{day_date}/activities/{activity_id}/move")
    def move_activity(trip_id: str, day_date: str, activity_id: str, body: MoveActivityRequest):
        return edit_response(editor.move_activity(
            trip_id, day_date, activity_id, body.to_date,
            requested_time=body.requested_time, auto_optimize=body.auto_optimize,
        ))

    @app.post("/trips/{trip_id}/days/{day_date}/activities/{activity_id}/duplicate")
    def duplicate_activity(trip_id: str, day_date: str, activity_id: str, body: DuplicateActivityRequest):
        return edit_response(editor.duplicate_activity(
            trip_id, day_date, activity_id, target_date=body.target_date,
            requested_time=body.requested_time, auto_optimize=body.auto_optimize,
        ))

    @app.post("/trips/{trip_id}/days/{day_date}/slots")
    def find_slots(trip_id: str, day_date: str, body: TimeSlotRequest):
        day = find_day(store.get_days(trip_id), day_date)
        preferences = SchedulingPreferences(
            early_bird            = body.early_bird,
            night_owl             = body.night_owl,
            buffer_minutes        = body.buffer_minutes,
            preferred_time_of_day = body.preferred_time_of_day,
            avoid_meal_times      = body.avoid_meal_times,
        )
        result = find_time_slots(day.activities, body.duration_minutes, preferences, body.conditions)
        return {
            "available_slots": jsonable_encoder(result.available_slots),
            "best_slot":       jsonable_encoder(result.best_slot),
            "day_schedule":    jsonable_encoder(result.day_schedule),
            "warnings":        result.warnings,
        }

    @app.post("/trips/{trip_id}/days/{day_date}/weather")
    def score_day(trip_id: str, day_date: str, body: WeatherScoreRequest):
        day = find_day(store.get_days(trip_id), day_date)
        if body.weather is not None:
            weather = body.weather.to_domain()
            weather.date = weather.date or day.date
        else:
            if body.lat is None or body.lng is None:
                raise ValidationError("coordinates are required when no forecast is supplied", field="lat")
            weather = weather_tool.fetch(body.lat, body.lng, day.date)

        group = None
        if body.group:
            group = aggregator.aggregate([p.to_domain() for p in body.group])
        result = scorer.rank(day.activities, weather, group)
        return {
            "weather": jsonable_encoder(weather),
            "results": [
                {
                    "activity":    activity_json(r.activity),
                    "score":       r.score,
                    "tier":        r.tier.value,
                    "environment": r.environment.value if r.environment else None,
                    "warnings":    r.warnings,
                    "best_time":   r.best_time,
                }
                for r in result.results
            ],
            "best_time_of_day":    result.best_time_of_day,
            "indoor_alternatives": jsonable_encoder(result.indoor_alternatives),
            "weather_tips":        result.weather_tips,
            "summary":             result.summary,
        }

    @app.post("/trips/{trip_id}/reminders")
    def create_reminders(trip_id: str, body: ReminderRequest):
        trip = store.get_trip(trip_id)
        settings = ReminderSettings(
            enable_auto_reminders=body.enable_auto_reminders,
            reminder_days_before=body.reminder_days_before,
        )
        result = analyzer.analyze(
            store.get_days(trip_id),
            scope=body.scope,
            activity_id=body.activity_id,
            settings=settings,
            trip_id=trip_id,
            travelers=trip.travelers,
            dietary=body.dietary,
        )
        return {
            "reminders":         jsonable_encoder(result.reminders),
            "stats":             jsonable_encoder(result.stats),
            "recommendations":   result.recommendations,
            "persisted":         result.persisted,
            "persistence_error": str(result.persistence_error) if result.persistence_error else None,
        }

    @app.get("/trips/{trip_id}/reminders")
    def list_reminders(trip_id: str):
        return {"reminders": jsonable_encoder(store.get_reminders(trip_id))}

    @app.post("/trips/{trip_id}/reminders/{reminder_id}/status")
    def set_reminder_status(trip_id: str, reminder_id: str, body: ReminderStatusRequest):
        return jsonable_encoder(store.update_reminder_status(trip_id, reminder_id, body.status))

    @app.post("/group/preferences")
    def aggregate_preferences(body: GroupRequest):
        result = aggregator.aggregate([p.to_domain() for p in body.travelers], body.mode, body.policy)
        return jsonable_encoder(result)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
