"""Administrative queries over the chat database: users, messages and roles."""

from __future__ import annotations

import json
import logging
from contextlib import closing
from dataclasses import dataclass
from typing import Any

import pymysql

logger = logging.getLogger(__name__)

DEFAULT_SERVER = "127.0.0.1:3306"
DEFAULT_USER = "root"
PASSWORD = "password"
DEFAULT_DATABASE = "chat"

STATUS_ADMIN = 0
STATUS_DELETED = 2

PROFILE_COLUMNS = (
    "user_id",
    "login_id",
    "login_pw",
    "user_name",
    "user_addr",
    "user_phone",
    "user_email",
    "user_birthdate",
)

EMPTY_BODY = "error: Request body is empty"
LOGIN_ID_REQUIRED = "error: login_id is required and cannot be empty"
USER_NOT_FOUND = "error: User not found"


@dataclass(frozen=True)
class HandlerResult:
    """Status, body and content type of an answer to an admin request."""

    status: int
    body: str
    content_type: str


def connect_mysql(server=DEFAULT_SERVER, user=DEFAULT_USER, password=PASSWORD,
                  database=DEFAULT_DATABASE):
    """Open an autocommitting MySQL connection to ``host:port``."""
    address = server.removeprefix("tcp://")
    host, sep, port = address.rpartition(":")
    if not sep:
        host, port = address, "3306"
    try:
        connection = pymysql.connect(
            host=host,
            port=int(port),
            user=user,
            password=password,
            database=database,
            charset="utf8mb4",
            autocommit=True,
        )
    except pymysql.MySQLError:
        logger.error("MySQL Connection Failed")
        raise
    logger.info("MySQL Connection success!!")
    return connection


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), sort_keys=True)


def _parse_object(body) -> dict:
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8")
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as exc:
        raise ValueError(f"request body is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("request body must be a JSON object")
    return parsed


def _int_field(obj: dict, name: str) -> int:
    if name not in obj:
        raise ValueError(f"missing field {name!r}")
    value = obj[name]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"field {name!r} must be a number")
    return int(value)


class AdminStore:
    """Admin operations over a DB-API connection to the chat schema."""

    def __init__(self, connection, placeholder="%s"):
        self.connection = connection
        self.placeholder = placeholder

    def _sql(self, text: str) -> str:
        return text.replace("?", self.placeholder)

    def _query(self, text: str, params=()) -> list[tuple]:
        with closing(self.connection.cursor()) as cursor:
            cursor.execute(self._sql(text), params)
            return list(cursor.fetchall())

    def _execute(self, text: str, params=()) -> int:
        with closing(self.connection.cursor()) as cursor:
            cursor.execute(self._sql(text), params)
            count = cursor.rowcount
        self.connection.commit()
        return count

    def all_users(self):
        """Every user's id, login id, name and status; empty if the query fails."""
        try:
            rows = self._query(
                "SELECT user_id, login_id, user_name, user_status FROM User"
            )
        except Exception as exc:  # DB-API errors differ per driver
            logger.error("Query failed: %s", exc)
            return []
        return [
            {"user_id": user_id, "login_id": login_id,
             "user_name": user_name, "user_status": status}
            for user_id, login_id, user_name, status in rows
        ]

    def _set_status(self, user_id: int, status: int) -> bool:
        try:
            rows = self._query("SELECT user_status FROM User WHERE user_id = ?", (user_id,))
            if not rows:
                return False
            if rows[0][0] == status:
                logger.info("user_id %s already has status %s", user_id, status)
                return False
            changed = self._execute(
                "UPDATE User SET user_status = ? WHERE user_id = ?", (status, user_id)
            )
        except Exception as exc:
            logger.error("실패: %s", exc)
            return False
        if changed > 0:
            logger.info("User ID %s 상태가 %s(으)로 변경되었습니다.", user_id, status)
            return True
        logger.info("업데이트 실패: user_id %s을(를) 찾을 수 없음", user_id)
        return False

    def delete_user(self, user_id):
        """Mark a user deleted; True if the status changed."""
        return self._set_status(int(user_id), STATUS_DELETED)

    def grant_admin(self, user_id):
        """Give a user admin status; True if the status changed."""
        return self._set_status(int(user_id), STATUS_ADMIN)

    def delete_message(self, msg_id):
        """Delete one message; True if a row was removed."""
        try:
            removed = self._execute("DELETE FROM Message WHERE msg_id = ?", (int(msg_id),))
        except Exception as exc:
            logger.error("실패: %s", exc)
            return False
        if removed > 0:
            logger.info("메시지가 성공적으로 삭제되었습니다.")
            return True
        logger.info("삭제할 메시지가 없습니다.")
        return False

    def user_profile(self, login_id):
        """Full profile rows for ``login_id``, keys in a fixed order."""
        try:
            rows = self._query(
                "SELECT " + ", ".join(PROFILE_COLUMNS) + " FROM User WHERE login_id = ?",
                (login_id,),
            )
        except Exception as exc:
            logger.error("Query failed: %s", exc)
            return []
        profiles = []
        for row in rows:
            user_id, *rest = row
            profile = {"user_id": user_id}
            profile.update(
                (name, "" if value is None else str(value))
                for name, value in zip(PROFILE_COLUMNS[1:], rest)
            )
            profiles.append(profile)
        return profiles

    def handle_admin_select(self, body=""):
        """List every user as JSON."""
        return HandlerResult(200, _dump(self.all_users()), "application/json")

    def handle_user_delete(self, body):
        """Mark the user named by ``user_id`` in the body as deleted."""
        self.delete_user(_int_field(_parse_object(body), "user_id"))
        return HandlerResult(200, "user delete sucess", "text/plain")

    def handle_message_delete(self, body):
        """Delete the message named by ``msg_id`` in the body."""
        self.delete_message(_int_field(_parse_object(body), "msg_id"))
        return HandlerResult(200, "message delete sucess", "text/plain")

    def handle_admin_status(self, body):
        """Grant admin status to the user named by ``user_id`` in the body."""
        self.grant_admin(_int_field(_parse_object(body), "user_id"))
        return HandlerResult(200, "update admin sucess", "text/plain")

    def handle_user_select(self, body):
        """Return the profile of the user named by ``login_id`` in the body."""
        if not body:
            return HandlerResult(400, EMPTY_BODY, "application/json")
        request = _parse_object(body)
        login_id = request.get("login_id")
        if login_id is None:
            return HandlerResult(400, LOGIN_ID_REQUIRED, "application/json")
        if not isinstance(login_id, str):
            raise ValueError("field 'login_id' must be a string")
        if not login_id:
            return HandlerResult(400, LOGIN_ID_REQUIRED, "application/json")
        profiles = self.user_profile(login_id)
        if not profiles:
            return HandlerResult(404, USER_NOT_FOUND, "application/json")
        text = json.dumps(profiles, ensure_ascii=False, separators=(",", ":"))
        return HandlerResult(200, text, "application/json")