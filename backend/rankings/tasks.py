from celery import shared_task

from .services import record_completion as record_completion_service


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 5},
    name="rankings.record_completion",
)
def record_completion(self, pilot_id: int, hours: str, booking_id: str) -> dict:
    """Celery entrypoint for crediting a completed booking to a pilot."""
    stats = record_completion_service(pilot_id=pilot_id, hours=hours, booking_id=booking_id)
    return {
        "pilot_id": pilot_id,
        "total_flight_hours": str(stats.total_flight_hours),
        "tier": stats.tier,
    }
