from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request


# PUBLIC_INTERFACE
def api_envelope(
    request: Request,
    data: Any,
    links: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """
    Build the standard success envelope.

    Args:
        request: The current request; its request id is echoed in meta.
        data: Payload for the response.
        links: Related resource links, keyed by relation name.

    Returns:
        Dict with keys: data, meta (request_id, served_at), links.
    """
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    return {
        "data": data,
        "meta": {
            "request_id": request_id,
            "served_at": datetime.now(timezone.utc),
        },
        "links": dict(links or {}),
    }
