"""
Activity presets: provider profiles, distance bands and retry policy per
activity type.
"""

from typing import Dict, Tuple

from wayfinder.config.config import Settings, settings as default_settings
from wayfinder.models.route import (
    Activity,
    DistanceRange,
    SearchGoal,
    SearchPolicy,
)


# Preferred profile first; later entries are fallbacks when the provider
# reports a profile as unavailable
ACTIVITY_PROFILES: Dict[Activity, Tuple[str, ...]] = {
    Activity.WALKING: ("foot-walking", "foot-hiking"),
    Activity.CYCLING: ("cycling-road", "cycling-regular"),
}


def parse_activity(value: str) -> Activity:
    """Map a user supplied route type onto an Activity (ValueError if unknown)"""
    return Activity(value.strip().lower())


def profiles_for(activity: Activity) -> Tuple[str, ...]:
    return ACTIVITY_PROFILES[activity]


def build_goal(activity: Activity, config: Settings = default_settings) -> SearchGoal:
    """Search goal for one search run (one cycling day, or the whole walk)"""
    if activity is Activity.WALKING:
        return SearchGoal(
            activity=activity,
            target_distance_km=config.walking_target_km,
            acceptable_range=DistanceRange(
                config.walking_acceptable_min_km, config.walking_acceptable_max_km
            ),
            ideal_range=DistanceRange(config.walking_ideal_min_km, config.walking_ideal_max_km),
            max_attempts=config.walking_max_attempts,
            profiles=profiles_for(activity),
            require_loop=True,
        )
    return SearchGoal(
        activity=activity,
        target_distance_km=config.cycling_target_km,
        acceptable_range=DistanceRange(
            config.cycling_acceptable_min_km, config.cycling_acceptable_max_km
        ),
        ideal_range=DistanceRange(config.cycling_ideal_min_km, config.cycling_ideal_max_km),
        max_attempts=config.cycling_max_attempts,
        profiles=profiles_for(activity),
        require_loop=False,
    )


def build_policy(activity: Activity, config: Settings = default_settings) -> SearchPolicy:
    if activity is Activity.WALKING:
        # Walking keeps reshaping the loop toward the ideal band on every
        # attempt and only settles for "acceptable" once attempts run out
        return SearchPolicy(
            adjust_limit=None,
            accept_within_acceptable=False,
            transient_retries=config.transient_retries,
            backoff_base_s=config.backoff_base_s,
            backoff_cap_s=config.backoff_cap_s,
        )
    return SearchPolicy(
        adjust_limit=config.cycling_adjust_limit,
        accept_within_acceptable=True,
        transient_retries=config.transient_retries,
        backoff_base_s=config.backoff_base_s,
        backoff_cap_s=config.backoff_cap_s,
    )


def fallback_speed_kmh(activity: Activity, config: Settings = default_settings) -> float:
    if activity is Activity.WALKING:
        return config.walking_fallback_speed_kmh
    return config.cycling_fallback_speed_kmh
