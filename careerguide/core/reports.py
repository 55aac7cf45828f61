from typing import Any, Dict, Iterable, List

from careerguide.core.models import Application, ApplicationStatus, Listing


def summarize_applications(applications: Iterable[Application], listings: Iterable[Listing] = ()) -> Dict[str, Any]:
    """Counts for an institution dashboard: by status, by qualification and per listing."""
    apps: List[Application] = list(applications)
    by_status = {s.value: 0 for s in ApplicationStatus}
    for a in apps:
        by_status[a.status.value] += 1

    by_listing: Dict[str, Dict[str, Any]] = {}
    for p in listings:
        own = [a for a in apps if a.listing_id == p.id]
        by_listing[p.id] = {
            "name": p.name,
            "count": len(own),
            "qualified": sum(1 for a in own if a.is_qualified),
            "admitted": sum(1 for a in own if a.status == ApplicationStatus.ADMITTED),
        }

    return {
        "total_applications": len(apps),
        "applications_by_status": by_status,
        "qualification": {
            "qualified": sum(1 for a in apps if a.is_qualified),
            "unqualified": sum(1 for a in apps if not a.is_qualified),
        },
        "applications_by_listing": by_listing,
    }
