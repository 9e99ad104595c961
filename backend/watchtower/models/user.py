"""
user.py — Normalized User Record

Purpose:
- The one common user shape produced by aggregation, regardless of the
  source app's schema.

Identity:
- `id` is only unique inside one app's users table. `(app, id)` is the only
  stable compound key across the aggregated list.

NormalizedUser values are built fresh per request and never persisted.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass
class NormalizedUser:
    id: str
    name: str
    email: str
    phone: Optional[str]
    role: str
    status: str
    app: str
    created_at: Optional[str]
    last_sign_in_at: Optional[str]

    @property
    def key(self) -> Tuple[str, str]:
        return (self.app, self.id)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
