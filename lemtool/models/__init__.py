"""
models/__init__.py — imports all ORM models so Alembic's env.py
sees them via Base.metadata when generating migrations.
"""
from lemtool.models.project import ProjectORM
from lemtool.models.session import TestSessionORM
from lemtool.models.user_role import UserRoleORM

__all__ = ["ProjectORM", "TestSessionORM", "UserRoleORM"]
