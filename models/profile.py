import logging

from models.domain import StoreProfile
from utils.file_manager import PROFILE_KEY, dump_json_blob, load_json_blob

LOG = logging.getLogger(__name__)

SEED_PROFILE = {
    "name": "Nasi Goreng AI",
    "address": "Jl. Rasa No. 1, Jakarta",
    "phone": "0812-3456-7890",
    "socialMedia": "@nasigorengai",
    "footerText": "Powered by NasiGorAI",
}


class ProfileStore:
    def __init__(self, storage):
        self.storage = storage

    def get(self) -> StoreProfile:
        try:
            raw = load_json_blob(self.storage, PROFILE_KEY)
            if raw is None:
                return StoreProfile.from_dict(SEED_PROFILE)
            return StoreProfile.from_dict(raw)
        except (ValueError, KeyError, TypeError) as exc:
            LOG.warning("Stored profile is unreadable (%s); using seed profile", exc)
            return StoreProfile.from_dict(SEED_PROFILE)

    def save(self, profile: StoreProfile) -> StoreProfile:
        if not profile.name.strip():
            raise ValueError("Store name is required")
        dump_json_blob(self.storage, PROFILE_KEY, profile.to_dict())
        return profile
