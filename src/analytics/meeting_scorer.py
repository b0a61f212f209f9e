"""
Meeting Scorer - weighs a proposed meeting time against learned patterns
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from config.settings import Config
from src.analytics.models import MeetingPattern, MeetingScore, ScoreFactor
from utils.time_helpers import at_hour, days_until, hour_key, parse_hour, weekday_index, weekday_name

logger = logging.getLogger(__name__)

NO_HISTORY_RECOMMENDATION = "No historical data available for scoring"

DAY_WEIGHT = 25
TIME_WEIGHT = 25
PRODUCTIVITY_WEIGHT = 20
PARTICIPANT_WEIGHT = 15
TIMEZONE_WEIGHT = 15

def timezone_fairness(proposed_time: datetime, participants: List[str],
                      patterns: MeetingPattern) -> Tuple[int, str]:
    """
    Timezone factor contribution and description.

    Always grants full credit for now; participant timezones are learned
    but not yet weighed against the proposed hour.
    """
    return TIMEZONE_WEIGHT, "Time works well for all timezones"

def best_acceptance_slot(patterns: MeetingPattern, first_hour: int = 9,
                         last_hour: int = 17) -> Optional[Tuple[str, int]]:
    """Most-accepted weekday and most-accepted hour in [first_hour, last_hour]"""
    by_day = patterns.acceptance.by_day_of_week
    by_hour = {
        hour: rate for hour, rate in patterns.acceptance.by_time_of_day.items()
        if first_hour <= parse_hour(hour) <= last_hour
    }
    if not by_day or not by_hour:
        return None

    best_day = min(by_day, key=lambda day: (-by_day[day], weekday_index(day)))
    best_hour = min(by_hour, key=lambda hour: (-by_hour[hour], hour))
    return best_day, parse_hour(best_hour)

class MeetingScorer:
    """Scores meeting times with a five-factor weighted model"""

    def __init__(self, patterns: Optional[MeetingPattern], config: Optional[Config] = None):
        self.patterns = patterns
        self.config = config or Config()

    def score_meeting_time(self, proposed_time: datetime, participants: Optional[List[str]] = None,
                           duration: int = 30) -> MeetingScore:
        """
        Score a proposed meeting time.

        Args:
            proposed_time: Meeting start
            participants: Participant emails
            duration: Meeting length in minutes

        Returns:
            MeetingScore with score and confidence in [0, 100]. Without
            patterns the neutral score of 50 with zero confidence is returned.
        """
        if self.patterns is None:
            return MeetingScore(score=50, confidence=0, recommendation=NO_HISTORY_RECOMMENDATION)

        participants = [email.strip().lower() for email in participants or []]
        factors: List[ScoreFactor] = []
        total = 0
        max_total = 0

        day = weekday_name(proposed_time)
        day_rate = self.patterns.acceptance.by_day_of_week.get(day)
        if day_rate is not None:
            contribution = int(day_rate * DAY_WEIGHT)
            total += contribution
            max_total += DAY_WEIGHT
            factors.append(ScoreFactor(
                name="Day Preference",
                impact=contribution - 13,
                description=f"{day_rate * 100:.0f}% acceptance rate on {day}s"
            ))

        hour = hour_key(proposed_time.hour)
        hour_rate = self.patterns.acceptance.by_time_of_day.get(hour)
        if hour_rate is not None:
            contribution = int(hour_rate * TIME_WEIGHT)
            total += contribution
            max_total += TIME_WEIGHT
            factors.append(ScoreFactor(
                name="Time Preference",
                impact=contribution - 13,
                description=f"{hour_rate * 100:.0f}% acceptance rate at {hour}"
            ))

        productivity, productivity_description = self._productivity_score(proposed_time)
        total += productivity
        max_total += PRODUCTIVITY_WEIGHT
        factors.append(ScoreFactor(
            name="Productivity",
            impact=productivity - 10,
            description=productivity_description
        ))

        participant_score = self._participant_score(participants, proposed_time)
        total += participant_score
        max_total += PARTICIPANT_WEIGHT
        if participant_score > 0:
            factors.append(ScoreFactor(
                name="Participant Match",
                impact=participant_score - 8,
                description="Based on historical meetings with these participants"
            ))

        timezone_score, timezone_description = timezone_fairness(proposed_time, participants, self.patterns)
        total += timezone_score
        max_total += TIMEZONE_WEIGHT
        factors.append(ScoreFactor(
            name="Timezone",
            impact=timezone_score - TIMEZONE_WEIGHT,
            description=timezone_description
        ))

        final_score = min(100, max(0, round(total * 100 / max_total)))

        alternatives = []
        if final_score < self.config.ALTERNATIVE_SCORE_THRESHOLD:
            alternatives = self._suggest_alternatives(proposed_time)

        score = MeetingScore(
            score=final_score,
            confidence=self._confidence(),
            success_rate=day_rate if day_rate is not None else self.patterns.acceptance.overall,
            factors=factors,
            recommendation=self._recommendation(final_score, factors),
            alternative_times=alternatives
        )
        logger.debug(f"Scored {proposed_time.isoformat()} at {score.score}/100 ({len(factors)} factors)")
        return score

    def _productivity_score(self, proposed_time: datetime) -> Tuple[int, str]:
        day = weekday_name(proposed_time)

        for block in self.patterns.productivity.focus_blocks:
            if block.day_of_week == day and parse_hour(block.start_time) == proposed_time.hour:
                return int(block.score / 5), "Peak focus time - fewer meetings scheduled"

        density = self.patterns.productivity.meeting_density.get(day)
        if density is not None:
            description = f"Average {density:.1f} meetings on {day}s"
            if density < 2:
                return 18, description
            if density < 4:
                return 12, description
            return 6, description

        return 10, "Standard productivity time"

    def _participant_score(self, participants: List[str], proposed_time: datetime) -> int:
        if not participants:
            return 8

        day = weekday_name(proposed_time)
        hour = hour_key(proposed_time.hour)
        total = 0
        known = 0

        for email in participants:
            pattern = self.patterns.participants.get(email)
            if pattern is None:
                continue
            known += 1
            if day in pattern.preferred_days:
                total += 8
            if hour in pattern.preferred_times:
                total += 7

        if known == 0:
            return 8
        return total // known

    def _confidence(self) -> float:
        """Share of the five pattern categories that have data"""
        categories = [
            self.patterns.acceptance.by_day_of_week,
            self.patterns.acceptance.by_time_of_day,
            self.patterns.productivity.peak_focus,
            self.patterns.participants,
            self.patterns.duration.by_participant,
        ]
        return sum(1 for category in categories if category) / len(categories) * 100

    def _recommendation(self, score: int, factors: List[ScoreFactor]) -> str:
        if score >= 85:
            return "Excellent time - highly recommended based on historical patterns"
        if score >= 70:
            return "Good time - aligns well with your preferences"
        if score >= 50:
            return "Acceptable time - consider alternatives if available"

        worst = None
        for factor in factors:
            if factor.impact < 0 and (worst is None or factor.impact < worst.impact):
                worst = factor
        if worst is not None:
            return f"Not recommended - {worst.name} is suboptimal. Consider alternative times."
        return "Not recommended - consider alternative times"

    def _suggest_alternatives(self, proposed_time: datetime) -> List[datetime]:
        slot = best_acceptance_slot(
            self.patterns,
            self.config.ALTERNATIVE_HOURS_START,
            self.config.ALTERNATIVE_HOURS_END
        )
        if slot is None:
            return []

        best_day, best_hour = slot
        days_ahead = days_until(proposed_time.weekday(), weekday_index(best_day))
        return [at_hour(proposed_time, days_ahead, best_hour)]
