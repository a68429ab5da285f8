from fastapi import Request

from wallbox_stats.services.snapshot import Snapshot


def get_snapshot(request: Request) -> Snapshot:
    return request.app.state.snapshot
