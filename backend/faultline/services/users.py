from __future__ import annotations

"""backend/faultline/services/users.py

In-memory user store behind the demo HTTP API.

Failures are raised as classified errors:
- lookup of an unknown id: permanent, adapters domain, marked ERR_NOT_FOUND
- simulated database outage: temporary, adapters domain, marked ERR_TIMEOUT
- missing name/email on create: permanent, usecase domain, with a hint
"""

import random
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from faultline import errors


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class User:
    id: int
    name: str
    email: str
    created_at: datetime = field(default_factory=_utcnow)


def _seed_users() -> Dict[int, User]:
    return {
        1: User(id=1, name="Alice", email="alice@example.com"),
        2: User(id=2, name="Bob", email="bob@example.com"),
        3: User(id=3, name="Charlie", email="charlie@example.com"),
    }


def _required_field_error(field_name: str, hint: str) -> errors.FaultlineError:
    err = errors.new(f"{field_name} is required")
    err = errors.with_domain(err, errors.DOMAIN_USECASE)
    err = errors.mark_permanent(err)
    return errors.with_hint(err, hint)


class UserService:
    """Thread-safe user store. FastAPI runs sync work on a thread pool."""

    def __init__(self, failure_rate: float = 0.0, rng: Optional[random.Random] = None):
        self._users = _seed_users()
        self._lock = threading.Lock()
        self._failure_rate = failure_rate
        self._rng = rng or random.Random()

    def get_user(self, user_id: int) -> User:
        if self._failure_rate > 0 and self._rng.random() < self._failure_rate:
            err = errors.mark(errors.new("database connection timeout"), errors.ERR_TIMEOUT)
            err = errors.mark_temporary(err)
            err = errors.with_domain(err, errors.DOMAIN_ADAPTERS)
            err = errors.with_hint(err, "Retry the request")
            raise errors.wrap_with_stack(err, "failed to fetch user from database")

        with self._lock:
            user = self._users.get(user_id)

        if user is None:
            err = errors.errorf("user with id %d not found", user_id)
            err = errors.mark(err, errors.ERR_NOT_FOUND)
            err = errors.with_domain(err, errors.DOMAIN_ADAPTERS)
            raise errors.mark_permanent(err)

        return user

    def create_user(self, name: str, email: str) -> User:
        if not name:
            raise _required_field_error("name", "Provide a valid name")
        if not email:
            raise _required_field_error("email", "Provide a valid email address")

        with self._lock:
            new_id = max(self._users, default=0) + 1
            user = User(id=new_id, name=name, email=email)
            self._users[new_id] = user
        return user
