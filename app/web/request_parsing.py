"""Form parsing for the sync route handlers."""

from __future__ import annotations

import anyio
from fastapi import Request
from starlette.datastructures import FormData


def parse_form_data_sync(request: Request) -> FormData:
    """Read form data from sync handlers running in threadpool."""
    return anyio.from_thread.run(request.form)
