# rockmundo/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional


# Rows coming back from the hosted database are plain dicts; these types
# describe what the rules take in and hand back.


@dataclass
class SongQualityInputs:
    genre: str
    skill_levels: Dict[str, float]
    creative_insight: float = 0.0
    musical_ability: float = 0.0
    technical_mastery: float = 0.0
    session_hours: float = 0.0
    co_writers: int = 0
    ai_lyrics: bool = False
    songs_written: int = 0      # songs this player finished before
    sessions_completed: int = 0  # sessions spent on this project


@dataclass
class SongQualityResult:
    total_quality: int
    melody_strength: int
    lyrics_strength: int
    rhythm_strength: int
    arrangement_strength: int
    production_potential: int
    genre_multiplier: float
    skill_ceiling: int
    session_luck_label: str
    session_luck_multiplier: float
    experience_bonus: int
    session_depth_bonus: int


@dataclass
class PerformanceFactors:
    """Inputs for one song of a gig. Everything except song_quality is 0..100."""
    song_quality: float
    rehearsal_level: float
    band_chemistry: float
    equipment_quality: float
    crew_skill_level: float
    member_skill_average: float
    venue_capacity_used: float


@dataclass
class SongPerformance:
    song_id: str
    song_title: str
    position: int
    score: float                # 0..25
    crowd_response: str
    breakdown: Dict[str, float] = field(default_factory=dict)


@dataclass
class GigResult:
    gig_id: str
    outcome_id: str
    actual_attendance: int
    overall_rating: float
    grade: str
    ticket_revenue: int
    merch_revenue: int
    total_costs: int
    net_profit: int
    fame_gained: int
    chemistry_change: int
    song_performances: List[SongPerformance] = field(default_factory=list)


@dataclass
class FanConversionInput:
    gig_id: str
    band_id: str
    venue_id: str
    actual_attendance: int
    overall_rating: float       # 0..25
    performance_grade: str
    band_fame: float
    band_genre: Optional[str] = None


@dataclass
class FanConversionResult:
    new_fans_gained: int
    casual_fans: int
    dedicated_fans: int
    superfans: int
    repeat_attendees: int
    conversion_rate: float      # percent
    city_name: str
    country_spillover: int
    demographic_breakdown: Dict[str, int] = field(default_factory=dict)


@dataclass
class PerformanceMetrics:
    """Festival performance metrics, each 0..100."""
    song_familiarity: float
    gear_quality: float
    band_chemistry: float
    setlist_flow: float
    crowd_management: float
    event_responses: float


@dataclass
class FestivalPerformanceInput:
    participation_id: str
    band_id: str
    performance_score: float
    crowd_energy_peak: float
    crowd_energy_avg: float
    event_responses: List[float] = field(default_factory=list)
    songs_performed: int = 0


@dataclass
class Review:
    publication_name: str
    reviewer_type: str
    score: int
    headline: str
    review_text: str
    sentiment: str
    fame_impact: int
    is_featured: bool


@dataclass
class FestivalPerformanceResult:
    performance_score: float
    payment_earned: int
    fame_earned: int
    merch_revenue: int          # net of the festival's cut
    new_fans_gained: int
    critic_score: int
    fan_score: int
    review_headline: str
    highlights: List[str] = field(default_factory=list)
    reviews: List[Review] = field(default_factory=list)


@dataclass
class RoyaltyShare:
    recipient: str
    percentage: float
    amount: float


@dataclass
class RoyaltyDistribution:
    gross_revenue: float
    label_share: float
    artist_share: float
    recouped_this_period: float
    recoupment_outstanding: float
    artist_payable: float
    shares: List[RoyaltyShare] = field(default_factory=list)


@dataclass(frozen=True)
class Transaction:
    id: str
    date: date
    type: str                   # income | expense | investment
    category: str
    amount: float
    description: str = ""


@dataclass(frozen=True)
class InvestmentPosition:
    id: str
    name: str
    category: str
    invested_amount: float
    current_value: float
    start_date: date


@dataclass
class PositionPerformance:
    position: InvestmentPosition
    roi: float
    annualized_roi: float


@dataclass
class PortfolioPerformance:
    total_invested: float
    total_current_value: float
    net_gain: float
    roi: float
    annualized_roi: float
    positions: List[PositionPerformance] = field(default_factory=list)


@dataclass
class LedgerMonth:
    month: str                  # "Jan"
    month_key: str              # "2024-01"
    income: float
    expenses: float


@dataclass
class FinancialSummary:
    cash: float
    total_invested: float
    investment_value: float
    total_loans: float
    net_worth: float
    total_earnings: float
    total_expenses: float
    monthly_income: float
    monthly_expenses: float
