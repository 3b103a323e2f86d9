"""
Adaptive search controller - the propose -> route -> evaluate feedback loop.

Every pass through the loop uses exactly one attempt and records exactly one
SearchAttempt, so a goal with max_attempts=N ends after at most N strategy
attempts. Each attempt is one provider call plus at most
policy.transient_retries retries of the same request. Transient and
unroutable conditions are absorbed here; only a SearchResult or a
RouteSearchError leaves.
"""
import asyncio
from typing import Awaitable, Callable, List, Optional

from loguru import logger

from wayfinder.models.route import (
    CandidateRoute,
    Classification,
    ProviderFailure,
    Quality,
    Rejected,
    SearchAttempt,
    SearchGoal,
    SearchPolicy,
    SearchResult,
    Success,
    Verdict,
    WaypointSet,
)
from wayfinder.services.map.errors import (
    InvalidRequestError,
    ProfileUnavailableError,
    ProviderAuthError,
    TransientProviderError,
    UnroutableError,
)
from wayfinder.services.map.map_service import RoutingService
from wayfinder.services.map.rate_limiter import RateLimiter, rate_limiter as shared_limiter
from wayfinder.services.route.errors import (
    ExhaustedSearchError,
    InvalidGoalError,
    ProviderFatalError,
    ProviderUnavailableError,
)
from wayfinder.services.route.evaluator import classify, closeness
from wayfinder.services.route.proposer import WaypointProposer


def validate_goal(goal: SearchGoal) -> None:
    for name, band in (("acceptable", goal.acceptable_range), ("ideal", goal.ideal_range)):
        if band.min_km < 0 or band.min_km > band.max_km:
            raise InvalidGoalError(f"{name} range {band.min_km}-{band.max_km}km is invalid")
    if not goal.ideal_range.within(goal.acceptable_range):
        raise InvalidGoalError("ideal range must lie inside the acceptable range")
    if goal.target_distance_km <= 0:
        raise InvalidGoalError("target distance must be positive")
    if goal.max_attempts < 1:
        raise InvalidGoalError("max_attempts must be at least 1")
    if not goal.profiles:
        raise InvalidGoalError("at least one routing profile is required")


def backoff_delay(retry: int, policy: SearchPolicy) -> float:
    return min(policy.backoff_base_s * 2 ** (retry + 1), policy.backoff_cap_s)


class AdaptiveSearchController:
    def __init__(
        self,
        routing_service: RoutingService,
        *,
        limiter: Optional[RateLimiter] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.routing_service = routing_service
        self._limiter = limiter or shared_limiter
        self._sleep = sleep

    async def search(
        self,
        goal: SearchGoal,
        proposer: WaypointProposer,
        policy: Optional[SearchPolicy] = None,
        *,
        label: str = "route",
    ) -> SearchResult:
        validate_goal(goal)
        policy = policy or SearchPolicy()

        attempts: List[SearchAttempt] = []
        profiles = list(goal.profiles)
        profile_index = 0
        best_distance_km: Optional[float] = None
        best_acceptable: Optional[Success] = None
        transient_attempts = 0
        waypoints = proposer.seed()

        def record(outcome, used_waypoints: WaypointSet, used_profile: str) -> None:
            attempts.append(
                SearchAttempt(
                    attempt_index=len(attempts),
                    waypoints=used_waypoints,
                    profile=used_profile,
                    outcome=outcome,
                )
            )

        attempt_index = 0
        try:
            for attempt_index in range(goal.max_attempts):
                profile = profiles[profile_index]
                logger.info(
                    f"🗺️ {label} attempt {attempt_index + 1}/{goal.max_attempts}: "
                    f"{len(waypoints.coordinates)} waypoints, radius {waypoints.radius_km:.2f}km, "
                    f"profile '{profile}'"
                )

                try:
                    candidate = await self._call_provider(waypoints, profile, policy)
                except ProviderAuthError as exc:
                    record(ProviderFailure(exc.kind, str(exc)), waypoints, profile)
                    logger.critical(f"🚨 Routing provider rejected our configuration: {exc}")
                    raise ProviderFatalError(str(exc)) from exc
                except ProfileUnavailableError as exc:
                    record(ProviderFailure(exc.kind, str(exc)), waypoints, profile)
                    if profile_index + 1 >= len(profiles):
                        logger.critical(f"🚨 No routing profile left for {goal.activity.value}: {exc}")
                        raise ProviderFatalError(
                            f"No available routing profile among {', '.join(profiles)}"
                        ) from exc
                    profile_index += 1
                    logger.warning(
                        f"🔄 {label}: profile '{profile}' unavailable, trying '{profiles[profile_index]}'"
                    )
                    continue
                except TransientProviderError as exc:
                    record(ProviderFailure(exc.kind, str(exc)), waypoints, profile)
                    transient_attempts += 1
                    logger.warning(f"⏳ {label}: provider still failing after retries: {exc}")
                    continue
                except (UnroutableError, InvalidRequestError) as exc:
                    record(ProviderFailure(exc.kind, str(exc)), waypoints, profile)
                    logger.warning(f"🔄 {label}: {exc}; trying different coordinates")
                    waypoints = proposer.reroute(waypoints, attempt_index)
                    continue

                classification = classify(candidate, goal)
                verdict = classification.verdict
                logger.info(
                    f"📏 {label} attempt {attempt_index + 1}: {candidate.distance_km:.2f}km "
                    f"(target {goal.target_distance_km}km) -> {verdict.value}"
                )

                if verdict is Verdict.UNUSABLE:
                    reason = classification.reason or verdict.value
                    record(Rejected(reason, candidate.distance_km), waypoints, profile)
                    waypoints = proposer.reroute(waypoints, attempt_index)
                    continue

                if best_distance_km is None or closeness(candidate.distance_km, goal) < closeness(
                    best_distance_km, goal
                ):
                    best_distance_km = candidate.distance_km

                if verdict is Verdict.WITHIN_IDEAL:
                    record(Success(candidate, classification), waypoints, profile)
                    return self._finish(candidate, classification, attempts, Quality.IDEAL, label)

                if verdict is Verdict.WITHIN_ACCEPTABLE:
                    if policy.accept_within_acceptable:
                        record(Success(candidate, classification), waypoints, profile)
                        return self._finish(candidate, classification, attempts, Quality.ACCEPTABLE, label)
                    record(Rejected("outside ideal range", candidate.distance_km), waypoints, profile)
                    if best_acceptable is None or closeness(candidate.distance_km, goal) < closeness(
                        best_acceptable.candidate.distance_km, goal
                    ):
                        best_acceptable = Success(candidate, classification)
                    waypoints = proposer.adjust(waypoints, classification, attempt_index)
                    continue

                # Too short / too long
                if policy.adjust_limit is not None and attempt_index >= policy.adjust_limit:
                    # Pragmatic acceptance: bounded API cost over exact distance
                    record(Success(candidate, classification), waypoints, profile)
                    logger.info(
                        f"✅ {label}: accepting {candidate.distance_km:.2f}km after "
                        f"{attempt_index + 1} attempts (closest achievable)"
                    )
                    return self._finish(
                        candidate, classification, attempts, Quality.CLOSEST_ACHIEVABLE, label
                    )
                record(Rejected(verdict.value, candidate.distance_km), waypoints, profile)
                waypoints = proposer.adjust(waypoints, classification, attempt_index)
        except asyncio.CancelledError:
            logger.warning(
                f"🛑 {label} search cancelled during attempt {attempt_index + 1} "
                f"({len(attempts)} attempts completed)"
            )
            raise

        if best_acceptable is not None:
            logger.info(
                f"✅ {label}: settling for {best_acceptable.candidate.distance_km:.2f}km "
                f"after {len(attempts)} attempts (acceptable, not ideal)"
            )
            return self._finish(
                best_acceptable.candidate,
                best_acceptable.classification,
                attempts,
                Quality.ACCEPTABLE,
                label,
            )

        # Nothing measured and the provider was flaky: report an outage
        if best_distance_km is None and transient_attempts:
            logger.error(
                f"❌ {label}: routing provider failed transiently on "
                f"{transient_attempts}/{len(attempts)} attempts"
            )
            raise ProviderUnavailableError(
                f"Routing provider kept failing transiently ({transient_attempts} attempts)"
            )

        logger.error(
            f"❌ {label}: exhausted {len(attempts)} attempts, best observed "
            f"{'none' if best_distance_km is None else f'{best_distance_km:.2f}km'}"
        )
        raise ExhaustedSearchError(best_distance_km, len(attempts), label)

    async def _call_provider(
        self, waypoints: WaypointSet, profile: str, policy: SearchPolicy
    ) -> CandidateRoute:
        """One strategy attempt: the provider call plus bounded transient retries"""
        retry = 0
        while True:
            await self._limiter.await_slot(self.routing_service.name)
            try:
                return await self.routing_service.route(waypoints, profile)
            except TransientProviderError as exc:
                if retry >= policy.transient_retries:
                    raise
                delay = backoff_delay(retry, policy)
                logger.info(f"⏳ Transient provider error ({exc}); retrying in {delay:.1f}s")
                retry += 1
                await self._sleep(delay)

    @staticmethod
    def _finish(
        candidate: CandidateRoute,
        classification: Classification,
        attempts: List[SearchAttempt],
        quality: Quality,
        label: str,
    ) -> SearchResult:
        logger.info(
            f"✅ {label}: {candidate.distance_km:.2f}km accepted as {quality.value} "
            f"after {len(attempts)} attempts"
        )
        return SearchResult(
            candidate=candidate,
            classification=classification,
            attempts=tuple(attempts),
            quality=quality,
        )
