"""SQLAlchemy database models for storing competition data"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, BigInteger, JSON, ForeignKey
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class HardwareRow(Base):
    """Folding hardware with its competition multiplier"""
    __tablename__ = 'hardware'

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    display_name = Column(String, nullable=False)
    make = Column(String, nullable=False)
    type = Column(String, nullable=False)
    multiplier = Column(Float, nullable=False)
    average_ppd = Column(BigInteger, nullable=False, default=0)

class TeamRow(Base):
    __tablename__ = 'teams'

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(String, nullable=True)
    forum_link = Column(String, nullable=True)

class UserRow(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    folding_username = Column(String, nullable=False)
    display_name = Column(String, nullable=False)
    passkey = Column(String, nullable=False)
    category = Column(String, nullable=False)
    hardware_id = Column(Integer, ForeignKey('hardware.id'), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey('teams.id'), nullable=False, index=True)
    is_captain = Column(Boolean, nullable=False, default=False)
    profile_link = Column(String, nullable=True)
    live_stats_link = Column(String, nullable=True)

class UserInitialStats(Base):
    """
    Baseline raw stats for a user.
    Competition points are the raw total minus this baseline.
    """
    __tablename__ = 'user_initial_stats'

    user_id = Column(Integer, primary_key=True)
    points = Column(BigInteger, nullable=False)
    units = Column(Integer, nullable=False)
    utc_timestamp = Column(DateTime, default=datetime.utcnow)

class UserOffsetStats(Base):
    """Cumulative offset applied to a user's competition stats"""
    __tablename__ = 'user_offset_tc_stats'

    user_id = Column(Integer, primary_key=True)
    points_offset = Column(BigInteger, nullable=False, default=0)
    multiplied_points_offset = Column(BigInteger, nullable=False, default=0)
    units_offset = Column(Integer, nullable=False, default=0)
    utc_timestamp = Column(DateTime, default=datetime.utcnow)

class UserTotalStats(Base):
    """Raw lifetime stats retrieved from the stats API on each update"""
    __tablename__ = 'user_total_stats'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    points = Column(BigInteger, nullable=False)
    units = Column(Integer, nullable=False)
    utc_timestamp = Column(DateTime, nullable=False)

class UserTcStatsHourly(Base):
    """Competition stats calculated on each update, the latest row is the current value"""
    __tablename__ = 'user_tc_stats_hourly'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    points = Column(BigInteger, nullable=False)
    multiplied_points = Column(BigInteger, nullable=False)
    units = Column(Integer, nullable=False)
    utc_timestamp = Column(DateTime, nullable=False)

class RetiredUserStats(Base):
    """Final competition stats of a user who left a team"""
    __tablename__ = 'retired_user_stats'

    retired_user_id = Column(Integer, primary_key=True)
    team_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=True)
    display_name = Column(String, nullable=False)
    final_points = Column(BigInteger, nullable=False)
    final_multiplied_points = Column(BigInteger, nullable=False)
    final_units = Column(Integer, nullable=False)
    utc_timestamp = Column(DateTime, default=datetime.utcnow)

class MonthlyResultRow(Base):
    __tablename__ = 'monthly_results'

    id = Column(Integer, primary_key=True)
    utc_timestamp = Column(DateTime, nullable=False, index=True)
    result = Column(JSON, nullable=False)

class PendingUserChange(Base):
    """State change requested while stats parsing was disabled, replayed on the next update"""
    __tablename__ = 'pending_user_changes'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    change_type = Column(String, nullable=False)
    previous_team_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
