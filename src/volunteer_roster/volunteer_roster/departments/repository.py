from __future__ import annotations

from typing import Optional, Protocol

from .model import Department


class DepartmentRepository(Protocol):
    def get_by_id(self, department_id: int) -> Optional[Department]:
        raise NotImplementedError

    def count_active(self) -> int:
        raise NotImplementedError
