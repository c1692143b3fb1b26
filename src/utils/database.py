import logging
import secrets
import string
from sqlalchemy import create_engine, text, update
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional, Dict, Any, List, Tuple
from datetime import date, datetime

from src.models.database_models import Base, Trip
from src.models.response_models import TripDebugRecord, TripRecord
from src.utils.config import get_settings
from src.utils.validators import TripInputValidator

SHARE_ID_ALPHABET = string.ascii_letters + string.digits
SHARE_ID_LENGTH = 10


def generate_share_id(length: int = SHARE_ID_LENGTH) -> str:
    """Short random public token; collisions are not checked"""
    return "".join(secrets.choice(SHARE_ID_ALPHABET) for _ in range(length))


class DatabaseManager:
    def __init__(self, database_url: Optional[str] = None):
        self.settings = get_settings()
        self.database_url = database_url or self.settings.DATABASE_URL
        self.logger = logging.getLogger(__name__)
        self.engine = None
        self.SessionLocal = None
        self._initialize_database()

    def _initialize_database(self):
        """Initialize database connection and create tables"""
        try:
            self.engine = create_engine(
                self.database_url,
                echo=self.settings.DATABASE_ECHO,
                pool_pre_ping=True
            )

            # Create tables
            Base.metadata.create_all(bind=self.engine)

            # Create session factory
            self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine)

            self.logger.info("[db] Database initialized successfully")

        except Exception as e:
            self.logger.error(f"[db] Failed to initialize database: {str(e)}")
            raise

    def get_session(self) -> Session:
        """Get a database session"""
        return self.SessionLocal()

    async def check_connection(self) -> bool:
        """True when a trivial query succeeds"""
        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            self.logger.error(f"[db] Health check failed: {str(e)}")
            return False

    async def create_trip(self, trip_description: str, trip_data: Dict[str, Any],
                          safety_info: Optional[Dict[str, Any]], ai_response_log: Optional[Dict[str, Any]] = None,
                          source_url: Optional[str] = None, start_date: Optional[date] = None,
                          end_date: Optional[date] = None, emergency_contact: Optional[str] = None) -> TripRecord:
        """Insert a trip under a fresh share id"""

        share_id = generate_share_id()
        try:
            with self.get_session() as session:
                trip = Trip(
                    share_id=share_id,
                    trip_description=trip_description,
                    source_url=source_url,
                    start_date=start_date,
                    end_date=end_date,
                    emergency_contact=emergency_contact,
                    trip_data=trip_data,
                    safety_info=safety_info,
                    ai_response_log=ai_response_log,
                    view_count=0,
                )
                session.add(trip)
                session.commit()
                session.refresh(trip)

                self.logger.info(f"[db] Trip {share_id} saved successfully")
                return TripRecord.model_validate(trip)

        except SQLAlchemyError as e:
            self.logger.error(f"[db] Database error saving trip {share_id}: {str(e)}")
            raise

    async def get_trip_by_share_id(self, share_id: str, count_view: bool = True) -> Optional[TripRecord]:
        """Look up a trip; a counted read increments view_count atomically"""

        try:
            with self.get_session() as session:
                trip = session.query(Trip).filter(Trip.share_id == share_id).first()
                if trip is None:
                    return None

                if count_view:
                    session.execute(
                        update(Trip)
                        .where(Trip.id == trip.id)
                        .values(view_count=Trip.view_count + 1, updated_at=Trip.updated_at)
                    )
                    session.commit()
                    session.refresh(trip)

                return TripRecord.model_validate(trip)

        except SQLAlchemyError as e:
            self.logger.error(f"[db] Database error retrieving trip {share_id}: {str(e)}")
            raise

    async def get_trip_debug(self, share_id: str) -> Optional[TripDebugRecord]:
        """Full record including the generation log; never counts a view"""

        try:
            with self.get_session() as session:
                trip = session.query(Trip).filter(Trip.share_id == share_id).first()
                if trip is None:
                    return None
                return TripDebugRecord.model_validate(trip)

        except SQLAlchemyError as e:
            self.logger.error(f"[db] Database error retrieving debug trip {share_id}: {str(e)}")
            raise

    async def list_trips(self, limit: int = 20, offset: int = 0, sort_by: Optional[str] = "created_at",
                         sort_order: Optional[str] = "desc") -> Tuple[List[TripRecord], int]:
        """Page of trips plus the total count"""

        column_name, order = TripInputValidator.normalize_sort(sort_by, sort_order)
        column = Trip.view_count if column_name == "view_count" else Trip.created_at
        ordering = column.asc() if order == "asc" else column.desc()

        try:
            with self.get_session() as session:
                total = session.query(Trip).count()
                rows = (
                    session.query(Trip)
                    .order_by(ordering, Trip.id)
                    .offset(max(offset, 0))
                    .limit(max(limit, 0))
                    .all()
                )
                return [TripRecord.model_validate(r) for r in rows], total

        except SQLAlchemyError as e:
            self.logger.error(f"[db] Database error listing trips: {str(e)}")
            raise

    async def update_trip_analysis(self, share_id: str, trip_data: Dict[str, Any],
                                   safety_info: Optional[Dict[str, Any]], ai_response_log: Optional[Dict[str, Any]],
                                   start_date: Optional[date] = None, end_date: Optional[date] = None,
                                   emergency_contact: Optional[str] = None) -> Optional[TripRecord]:
        """Overwrite the generated parts of a trip; the description is left untouched"""

        try:
            with self.get_session() as session:
                trip = session.query(Trip).filter(Trip.share_id == share_id).first()
                if trip is None:
                    self.logger.warning(f"[db] Trip {share_id} not found for update")
                    return None

                trip.trip_data = trip_data
                trip.safety_info = safety_info
                trip.ai_response_log = ai_response_log
                trip.start_date = start_date
                trip.end_date = end_date
                trip.emergency_contact = emergency_contact
                trip.updated_at = datetime.utcnow()

                session.commit()
                session.refresh(trip)
                self.logger.info(f"[db] Trip {share_id} updated successfully")
                return TripRecord.model_validate(trip)

        except SQLAlchemyError as e:
            self.logger.error(f"[db] Database error updating trip {share_id}: {str(e)}")
            raise

    def close(self):
        """Close database connections"""
        if self.engine:
            self.engine.dispose()
            self.logger.info("[db] Database connections closed")
