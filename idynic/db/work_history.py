"""Database operations for work history entries."""

from idynic.core.logging import get_logger
from idynic.core.schemas_tailoring import WorkHistory
from idynic.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_work_history(user_id: str) -> list[WorkHistory]:
    """
    List a user's positions in display order.

    Args:
        user_id: Owner of the work history

    Returns:
        Positions ordered by order_index

    Raises:
        Exception: If the database query fails
    """
    supabase = get_supabase()

    response = (
        supabase.table("work_history")
        .select("id, company, title, start_date, end_date, location")
        .eq("user_id", str(user_id))
        .order("order_index")
        .execute()
    )

    return [
        WorkHistory(
            id=str(row["id"]),
            company=row.get("company") or "",
            title=row.get("title") or "",
            start_date=row.get("start_date"),
            end_date=row.get("end_date"),
            location=row.get("location"),
        )
        for row in response.data or []
    ]
