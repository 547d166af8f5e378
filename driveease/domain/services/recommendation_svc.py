# driveease/domain/services/recommendation_svc.py
"""
Car recommendations.

Two policies:
  - personalized (viewer known): every available car is scored from its rating
    plus the first matching bonus rule (favorites > preferred > booked), then
    ranked by score and rating.
  - diverse (guest): the top rated car of each category, shuffled, topped up
    with the best remaining cars when there are fewer categories than `limit`.

Both policies work on a snapshot of available cars ordered by rating desc /
id asc, which makes every tie-break deterministic except the guest shuffle.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional, Sequence
import logging
import random
import time

from driveease.domain.models.car import Car, Recommendation
from driveease.domain.models.viewer import Viewer
from driveease.domain.services.constants import (
    BONUS_BOOKED,
    BONUS_FAVORITE,
    BONUS_PREFERRED,
    DEFAULT_RECOMMENDATION_LIMIT,
    REASON_BOOKED,
    REASON_FAVORITE,
    REASON_FILL,
    REASON_PREFERRED,
    REASON_TOP_RATED,
    TAG_BOOKED_BEFORE,
    TAG_DIVERSE,
    TAG_FEATURED,
    TAG_PREFERRED,
    TAG_TOP_RATED,
    TOP_RATED_THRESHOLD,
)

logger = logging.getLogger(__name__)

# Process-wide source for the guest shuffle
_rng = random.Random()


@dataclass(frozen=True)
class ViewerProfile:
    """Everything the scoring rules look at for one viewer."""
    favorite_ids: FrozenSet[str]
    preferred_categories: FrozenSet[str]
    booked_categories: FrozenSet[str]


@dataclass(frozen=True)
class BonusRule:
    applies: Callable[[Car, ViewerProfile], bool]
    bonus: float
    reason: str


# Evaluated in order; the first rule that applies wins.
BONUS_RULES: Sequence[BonusRule] = (
    BonusRule(lambda car, p: car.id in p.favorite_ids, BONUS_FAVORITE, REASON_FAVORITE),
    BonusRule(lambda car, p: car.category in p.preferred_categories, BONUS_PREFERRED, REASON_PREFERRED),
    BonusRule(lambda car, p: car.category in p.booked_categories, BONUS_BOOKED, REASON_BOOKED),
)


def _check_limit(limit: int) -> None:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")


def score_car(car: Car, profile: ViewerProfile) -> tuple[float, str]:
    score = car.rating or 0.0
    for rule in BONUS_RULES:
        if rule.applies(car, profile):
            return score + rule.bonus, rule.reason
    return score, REASON_TOP_RATED


def recommendation_tags(car: Car, profile: ViewerProfile) -> List[str]:
    tags: List[str] = []
    if car.rating >= TOP_RATED_THRESHOLD:
        tags.append(TAG_TOP_RATED)
    if car.category in profile.preferred_categories:
        tags.append(TAG_PREFERRED)
    if car.category in profile.booked_categories:
        tags.append(TAG_BOOKED_BEFORE)
    if car.is_featured:
        tags.append(TAG_FEATURED)
    tags.append(car.category)
    return tags


def rank_personalized(cars: Sequence[Car], profile: ViewerProfile, limit: int) -> List[Recommendation]:
    _check_limit(limit)
    scored = [(car, *score_car(car, profile)) for car in cars]
    # sorted() is stable: exact ties keep snapshot order
    scored.sort(key=lambda t: (t[1], t[0].rating or 0.0), reverse=True)
    return [
        Recommendation(car=car, reason=reason, tags=recommendation_tags(car, profile), score=score)
        for car, score, reason in scored[:limit]
    ]


def shuffle(items: List, rng: random.Random) -> List:
    """Fisher-Yates shuffle on a copy; every permutation is equally likely."""
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def _popular_reason(category: str) -> str:
    return f"Popular in {category[:1].upper()}{category[1:]}"


def pick_diverse(cars: Sequence[Car], limit: int, rng: Optional[random.Random] = None) -> List[Recommendation]:
    """
    `cars` must be ordered top rated first (ties by id), so the first car seen
    in each category is that category's pick.
    """
    _check_limit(limit)
    rng = rng or _rng

    best_by_category: dict[str, Car] = {}
    for car in cars:
        best_by_category.setdefault(car.category, car)

    picks = shuffle(
        [
            Recommendation(car=car, reason=_popular_reason(cat), tags=[TAG_DIVERSE, cat])
            for cat, car in best_by_category.items()
        ],
        rng,
    )

    if len(picks) < limit:
        chosen = {r.car.id for r in picks}
        fill = [c for c in cars if c.id not in chosen][: limit - len(picks)]
        picks += [Recommendation(car=c, reason=REASON_FILL, tags=[TAG_TOP_RATED]) for c in fill]

    return picks[:limit]


async def get_recommendations(
    car_repo,
    booking_repo,
    *,
    viewer: Optional[Viewer] = None,
    limit: int = DEFAULT_RECOMMENDATION_LIMIT,
    rng: Optional[random.Random] = None,
) -> List[Recommendation]:
    """
    Personalized recommendations when `viewer` is given, diverse ones otherwise.
    Store errors propagate; an empty catalog yields an empty list.
    """
    _check_limit(limit)
    t0 = time.perf_counter()

    if viewer is None:
        cars = await car_repo.list_available()
        result = pick_diverse(cars, limit, rng)
        logger.info(
            "recommendations guest candidates=%s items=%s total_time=%.3fs",
            len(cars), len(result), time.perf_counter() - t0,
        )
        return result

    booked = await booking_repo.booked_categories(viewer.id)
    profile = ViewerProfile(
        favorite_ids=frozenset(viewer.favorites),
        preferred_categories=frozenset(viewer.preferred_category_slugs),
        booked_categories=frozenset(booked),
    )
    logger.debug(
        "recommendations viewer=%s favorites=%s preferred=%s booked=%s",
        viewer.id, len(profile.favorite_ids), sorted(profile.preferred_categories), sorted(profile.booked_categories),
    )
    cars = await car_repo.list_available()
    result = rank_personalized(cars, profile, limit)
    logger.info(
        "recommendations viewer=%s candidates=%s items=%s total_time=%.3fs",
        viewer.id, len(cars), len(result), time.perf_counter() - t0,
    )
    return result
