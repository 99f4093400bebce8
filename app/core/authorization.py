from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, HTTPException, Request

from app.deps.auth import require_auth


class Role(Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


ROLE_RANK = {
    Role.EMPLOYEE: 1,
    Role.MANAGER: 2,
    Role.ADMIN: 3,
}


@dataclass(frozen=True)
class Principal:
    user_id: int
    company_id: int
    role: Role

    @property
    def is_manager(self) -> bool:
        return ROLE_RANK[self.role] >= ROLE_RANK[Role.MANAGER]


def require_role(role: Role):
    def dependency(request: Request, _auth: tuple[int, int] = Depends(require_auth)) -> Principal:
        user_id, company_id = _auth
        claim_role = request.state.claims.get("role")

        try:
            user_role = Role(str(claim_role).upper())
        except ValueError as exc:
            raise HTTPException(status_code=403, detail="Invalid role claim") from exc

        if ROLE_RANK[user_role] < ROLE_RANK[role]:
            raise HTTPException(status_code=403, detail="Insufficient role")

        request.state.role = user_role.value
        return Principal(user_id=user_id, company_id=company_id, role=user_role)

    return dependency
