# scholarmatch/ai/synthetic.py
"""
Synthetic decision history for local runs and tests.

    python -m scholarmatch.ai.synthetic 200
"""
import random
import sys

YEAR_LEVELS = ["Freshman", "Sophomore", "Junior", "Senior"]
COLLEGES = [
    "College of Arts and Sciences",
    "College of Engineering and Agro-Industrial Technology",
    "College of Agriculture and Food Science",
    "College of Economics and Management",
]
ST_BRACKETS = ["FDS", "FD", "PD80", "PD60", "PD40", "PD20", "ND"]
INCOMES = [60_000, 120_000, 180_000, 250_000, 400_000, 750_000, 1_200_000]


def synth_profile(rng: random.Random) -> dict:
    return {
        "gwa": round(rng.uniform(1.0, 3.5), 2),
        "annual_family_income": rng.choice(INCOMES),
        "units_enrolled": rng.choice([12, 15, 18, 21]),
        "household_size": rng.randint(2, 9),
        "year_level": rng.choice(YEAR_LEVELS),
        "college": rng.choice(COLLEGES),
        "st_bracket": rng.choice(ST_BRACKETS),
        "citizenship": "Filipino",
        "has_existing_scholarship": rng.random() < 0.2,
        "has_failing_grade": rng.random() < 0.1,
        "documents_submitted": rng.sample(
            ["Transcript of Records", "Certificate of Registration", "Income Tax Return"], k=rng.randint(0, 3)
        ),
    }


def synth_label(profile: dict, rng: random.Random, noise: float = 0.1) -> int:
    # simple synthetic rule for label
    approved = 1 if (profile["gwa"] <= 2.0 and profile["annual_family_income"] <= 250_000) else 0
    # add noise
    if rng.random() < noise:
        approved = 1 - approved
    return approved


def synth_history(n: int = 200, seed: int = 42, noise: float = 0.1) -> list:
    rng = random.Random(seed)
    rows = []
    for _ in range(n):
        profile = synth_profile(rng)
        rows.append((profile, synth_label(profile, rng, noise)))
    return rows


def seed_samples(store, scholarships: list, n: int = 200, seed: int = 42) -> int:
    rng = random.Random(seed + 1)
    count = 0
    for profile, approved in synth_history(n, seed):
        store.add_decision(profile, rng.choice(scholarships), bool(approved))
        count += 1
    return count


if __name__ == "__main__":
    from ..db import Base, engine
    from ..engine.scholarship_config import list_scholarships
    from .model_loader import get_sample_store

    Base.metadata.create_all(bind=engine)
    n = int(sys.argv[1]) if len(sys.argv) > 1 else 200
    written = seed_samples(get_sample_store(), list_scholarships(), n)
    print(f"{written} synthetic decisions saved")
