"""
In-memory storage for Coffee Plant Doctor.

Collections are plain dicts keyed by id, so iteration follows insertion
order. Nothing is persisted; a restart brings back only the seed data.
"""
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from schemas import (
    User, UserIn,
    Diagnosis, DiagnosisIn,
    FarmingTip, FarmingTipIn,
    EmergencyContact, EmergencyContactIn,
)

logger = logging.getLogger(__name__)

DEFAULT_FARMING_TIPS = [
    {
        "season": "flowering",
        "title": "Monitor for Pests",
        "description": "Check for coffee berry borer and antestia bugs",
        "priority": "high",
        "category": "pest_control",
    },
    {
        "season": "flowering",
        "title": "Reduce Watering",
        "description": "Flowers are sensitive to overwatering",
        "priority": "medium",
        "category": "watering",
    },
    {
        "season": "flowering",
        "title": "Apply Foliar Feed",
        "description": "Use potassium-rich fertilizer weekly",
        "priority": "high",
        "category": "fertilizing",
    },
]

DEFAULT_EMERGENCY_CONTACTS = [
    {
        "name": "Agricultural Extension",
        "organization": "Nandi County Office",
        "phoneNumber": "+254-700-123-456",
        "contactType": "extension",
        "isActive": "true",
    },
    {
        "name": "Farmer Cooperative",
        "organization": "Local support group",
        "phoneNumber": "+254-700-234-567",
        "contactType": "cooperative",
        "isActive": "true",
    },
    {
        "name": "Veterinary Services",
        "organization": "Plant disease emergency",
        "phoneNumber": "+254-700-345-678",
        "contactType": "veterinary",
        "isActive": "true",
    },
]


class DuplicateUsernameError(ValueError):
    pass


class MemStorage:
    def __init__(self, seed: bool = True, clock=None):
        self.users: Dict[str, User] = {}
        self.diagnoses: Dict[str, Diagnosis] = {}
        self.farming_tips: Dict[str, FarmingTip] = {}
        self.emergency_contacts: Dict[str, EmergencyContact] = {}
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._last_created_at: Optional[datetime] = None
        self._lock = threading.Lock()
        if seed:
            self.seed_defaults()

    def seed_defaults(self):
        for tip in DEFAULT_FARMING_TIPS:
            self.create_farming_tip(FarmingTipIn(**tip))
        for contact in DEFAULT_EMERGENCY_CONTACTS:
            self.create_emergency_contact(EmergencyContactIn(**contact))

    # ----------------------
    # Helpers
    # ----------------------
    def _new_id(self, collection: Dict[str, object]) -> str:
        new_id = str(uuid.uuid4())
        while new_id in collection:
            new_id = str(uuid.uuid4())
        return new_id

    def _now(self) -> datetime:
        # createdAt never goes backwards, even if the wall clock does
        now = self._clock()
        if self._last_created_at is not None and now < self._last_created_at:
            now = self._last_created_at
        self._last_created_at = now
        return now

    # ----------------------
    # Users
    # ----------------------
    def get_user(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.username == username), None)

    def create_user(self, data: UserIn) -> User:
        with self._lock:
            if self.get_user_by_username(data.username):
                raise DuplicateUsernameError(f"Username already taken: {data.username}")
            user = User(**data.model_dump(), id=self._new_id(self.users))
            self.users[user.id] = user
        logger.debug("Created user %s", user.id)
        return user

    # ----------------------
    # Diagnoses
    # ----------------------
    def create_diagnosis(self, data: DiagnosisIn) -> Diagnosis:
        with self._lock:
            diagnosis = Diagnosis(
                **data.model_dump(),
                id=self._new_id(self.diagnoses),
                createdAt=self._now(),
            )
            self.diagnoses[diagnosis.id] = diagnosis
        logger.debug("Stored diagnosis %s (%s)", diagnosis.id, diagnosis.diseaseName)
        return diagnosis

    def get_diagnosis(self, diagnosis_id: str) -> Optional[Diagnosis]:
        return self.diagnoses.get(diagnosis_id)

    def get_diagnoses(self, user_id: Optional[str] = None) -> List[Diagnosis]:
        """Most recent first; inserts sharing a timestamp keep reverse insertion order."""
        items = list(reversed(list(self.diagnoses.values())))
        if user_id:
            items = [d for d in items if d.userId == user_id]
        return sorted(items, key=lambda d: d.createdAt, reverse=True)

    # ----------------------
    # Farming tips
    # ----------------------
    def create_farming_tip(self, data: FarmingTipIn) -> FarmingTip:
        with self._lock:
            tip = FarmingTip(
                **data.model_dump(),
                id=self._new_id(self.farming_tips),
                createdAt=self._now(),
            )
            self.farming_tips[tip.id] = tip
        return tip

    def get_farming_tips(self, season: Optional[str] = None) -> List[FarmingTip]:
        tips = list(self.farming_tips.values())
        if season:
            return [t for t in tips if t.season == season]
        return tips

    # ----------------------
    # Emergency contacts
    # ----------------------
    def create_emergency_contact(self, data: EmergencyContactIn) -> EmergencyContact:
        with self._lock:
            contact = EmergencyContact(**data.model_dump(), id=self._new_id(self.emergency_contacts))
            self.emergency_contacts[contact.id] = contact
        return contact

    def get_emergency_contacts(self) -> List[EmergencyContact]:
        return [c for c in self.emergency_contacts.values() if c.isActive == "true"]

    def counts(self) -> Dict[str, int]:
        return {
            "users": len(self.users),
            "diagnoses": len(self.diagnoses),
            "farming_tips": len(self.farming_tips),
            "emergency_contacts": len(self.emergency_contacts),
        }


db = MemStorage()
