from __future__ import annotations

import logging
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash

from ..common.validators import require_non_empty
from ..core.exceptions import AuthenticationError
from .model import Principal, User
from .repository import UserRepository

logger = logging.getLogger(__name__)

ACCESS_TOKEN_SALT = "access-token"


class AuthService:
    """Use case: authenticate a user and resolve bearer credentials.

    The bearer credential is a signed, timestamped user id. Resolving it always
    re-reads the user so a disabled account or a changed department takes
    effect immediately.
    """

    def __init__(self, users: UserRepository, *, secret_key: str, max_age_seconds: int):
        self._users = users
        self._serializer = URLSafeTimedSerializer(secret_key, salt=ACCESS_TOKEN_SALT)
        self._max_age = int(max_age_seconds)

    @staticmethod
    def _to_principal(user: User) -> Principal:
        return Principal(
            user_id=user.user_id,
            name=user.full_name,
            role=user.role,
            department_id=user.department_id,
        )

    def authenticate(self, username: str, password: str) -> Principal:
        username = require_non_empty(username, "username")
        user = self._users.get_by_username(username)
        if not user or not user.is_active:
            raise AuthenticationError("Usuário ou senha inválidos")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not ok:
            raise AuthenticationError("Usuário ou senha inválidos")
        return self._to_principal(user)

    def issue_access_token(self, principal: Principal) -> str:
        return self._serializer.dumps({"uid": principal.user_id})

    def resolve_credential(self, credential: Optional[str]) -> Principal:
        if not credential:
            raise AuthenticationError("Sessão inválida.")
        try:
            data = self._serializer.loads(credential, max_age=self._max_age)
        except SignatureExpired:
            raise AuthenticationError("Sessão expirada.")
        except BadSignature:
            logger.warning("rejected bearer credential with bad signature")
            raise AuthenticationError("Sessão inválida.")

        user = self._users.get_by_id(int(data.get("uid", 0)))
        if not user or not user.is_active:
            raise AuthenticationError("Sessão inválida.")
        return self._to_principal(user)
