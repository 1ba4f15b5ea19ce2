"""
Profile database model.

A profile is the authenticated identity of a user: which company they belong
to, their role, any explicit permission grants on top of that role, and
whether the account is active.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from fleet_backend.app.db.session import Base
from fleet_backend.app.models.enums import Role, db_enum


class Profile(Base):
    """
    User profile.
    
    The primary key doubles as the user id carried in session tokens.
    explicit_permissions holds extra `resource:action` grants; grants only
    ever add to the role's base set.
    """
    __tablename__ = "profiles"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    
    role = Column(db_enum(Role, "profile_role"), default=Role.USER, nullable=False)
    explicit_permissions = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Profile(id={self.id}, email='{self.email}', company_id={self.company_id}, role='{self.role}')>"
