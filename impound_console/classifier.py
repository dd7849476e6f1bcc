from typing import List, Optional

from pydantic import BaseModel

from .models import Report, ReportStatus

BUCKET_STRAY = "stray"
BUCKET_LOST = "lost"
BUCKET_INCIDENT = "incident"

_BUCKETS = {
    ReportStatus.STRAY: BUCKET_STRAY,
    ReportStatus.IN_PROGRESS: BUCKET_STRAY,
    ReportStatus.LOST: BUCKET_LOST,
    ReportStatus.INCIDENT: BUCKET_INCIDENT,
}


class ReportBuckets(BaseModel):
    stray: List[Report] = []
    lost: List[Report] = []
    incident: List[Report] = []
    notifications: List[Report] = []

    @property
    def unread_count(self) -> int:
        return len([r for r in self.notifications if not r.impound_read])


def bucket_for(report: Report) -> Optional[str]:
    """The single bucket a report belongs to right now, or None."""
    kind = report.status_kind
    if kind is None:
        return None
    return _BUCKETS.get(kind)


def is_notification_eligible(report: Report) -> bool:
    return bucket_for(report) is not None and not report.hidden_impound_notification


def classify(reports: List[Report]) -> ReportBuckets:
    """Split a report stream into typed buckets, keeping the stream's order."""
    buckets = ReportBuckets()
    for report in reports:
        bucket = bucket_for(report)
        if bucket is None:
            # terminal, unknown or missing status
            continue
        getattr(buckets, bucket).append(report)
        if not report.hidden_impound_notification:
            buckets.notifications.append(report)
    return buckets
