# scholarmatch/ai/samples.py
from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import sessionmaker

from ..engine.features import extract_features
from ..models import TrainingSample


class SampleStore:
    """Append-only store of labeled decisions (feature snapshot + outcome)."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def add(
        self,
        features: Dict[str, float],
        label: int,
        scholarship_id: Optional[str] = None,
        application_id: Optional[str] = None,
    ) -> int:
        with self._session_factory() as db:
            row = TrainingSample(
                scholarship_id=scholarship_id,
                application_id=application_id,
                features=dict(features),
                label=1 if label else 0,
            )
            db.add(row)
            db.commit()
            return row.id

    def add_decision(self, profile: dict, scholarship: dict, approved: bool,
                     application_id: Optional[str] = None) -> Tuple[int, Dict[str, float]]:
        # snapshot the features at decision time
        features = extract_features(profile, scholarship)
        sample_id = self.add(features, int(approved), scholarship.get("id"), application_id)
        return sample_id, features

    def count(self, scholarship_id: Optional[str] = None) -> int:
        with self._session_factory() as db:
            q = db.query(func.count(TrainingSample.id))
            if scholarship_id is not None:
                q = q.filter(TrainingSample.scholarship_id == scholarship_id)
            return int(q.scalar() or 0)

    def load(self, scholarship_id: Optional[str] = None) -> Tuple[List[Dict[str, float]], List[int]]:
        with self._session_factory() as db:
            q = db.query(TrainingSample.features, TrainingSample.label)
            if scholarship_id is not None:
                q = q.filter(TrainingSample.scholarship_id == scholarship_id)
            rows = q.order_by(TrainingSample.id).all()
        return [r[0] for r in rows], [int(r[1]) for r in rows]

    def scholarship_counts(self) -> Dict[str, Dict[str, int]]:
        with self._session_factory() as db:
            rows = (
                db.query(
                    TrainingSample.scholarship_id,
                    func.count(TrainingSample.id),
                    func.sum(TrainingSample.label),
                )
                .filter(TrainingSample.scholarship_id.isnot(None))
                .group_by(TrainingSample.scholarship_id)
                .all()
            )
        return {
            sid: {"total": int(total), "approved": int(approved or 0), "rejected": int(total) - int(approved or 0)}
            for sid, total, approved in rows
        }
