# rockmundo/royalties.py
from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Optional

from rockmundo.config import ALBUM_QUOTA_VALUE, SINGLE_QUOTA_VALUE
from rockmundo.errors import ValidationError
from rockmundo.finance import format_currency
from rockmundo.logger import get_logger
from rockmundo.models import RoyaltyDistribution, RoyaltyShare

logger = get_logger(__name__)

REVENUE_CHANNELS = ["streaming", "digital", "physical", "sync", "other"]
CHANNEL_LABELS = {
    "streaming": "Streaming",
    "digital": "Digital",
    "physical": "Physical",
    "sync": "Licensing & Sync",
    "other": "Other",
}
INACTIVE_CONTRACT_STATUSES = {"terminated", "expired"}


def number_or_zero(value: Any) -> float:
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return 0.0
    return numeric if math.isfinite(numeric) else 0.0


def _largest_remainder(total: int, weights: Mapping[str, float]) -> Dict[str, int]:
    """Split an integer total by weights so the parts sum to exactly total."""
    weight_sum = sum(weights.values())
    exact = {k: total * w / weight_sum for k, w in weights.items()}
    parts = {k: math.floor(v) for k, v in exact.items()}
    leftover = total - sum(parts.values())
    # ties go to the earlier key
    order = sorted(exact, key=lambda k: exact[k] - parts[k], reverse=True)
    for k in order[:leftover]:
        parts[k] += 1
    return parts


def normalize_royalty_percentages(shares: Mapping[str, Any]) -> Dict[str, float]:
    """
    Rescale royalty percentages so they total exactly 100.00.

    Negative or non-numeric entries are dropped. If nothing positive is left,
    the remaining recipients split evenly.
    """
    clean = {}
    for name, pct in shares.items():
        try:
            value = float(pct)
        except (TypeError, ValueError):
            continue
        if math.isfinite(value) and value >= 0:
            clean[name] = value
    if not clean:
        return {}

    if sum(clean.values()) <= 0:
        clean = {name: 1.0 for name in clean}

    hundredths = _largest_remainder(10000, clean)
    return {name: h / 100 for name, h in hundredths.items()}


def calculate_royalty_distribution(
    gross_revenue: float,
    artist_pct: float,
    *,
    advance_amount: float = 0.0,
    recouped_amount: float = 0.0,
    collaborators: Optional[Mapping[str, Any]] = None,
) -> RoyaltyDistribution:
    """
    Split a royalty statement between label, advance recoupment and writers.

    The label keeps (100 - artist_pct)% of gross. The artist's part first pays
    down whatever advance is still outstanding; only the rest reaches the
    collaborators, split by their normalized percentages. All money is
    handled in whole cents and the shares always add up to the payable.
    """
    if not all(math.isfinite(v * 100) for v in (gross_revenue, advance_amount, recouped_amount)):
        raise ValidationError("Amounts must be finite")
    if gross_revenue < 0:
        raise ValidationError("Gross revenue cannot be negative")
    if not 0 <= artist_pct <= 100:
        raise ValidationError("Artist royalty percentage must be between 0 and 100")

    gross_cents = int(round(gross_revenue * 100))
    artist_cents = int(round(gross_cents * artist_pct / 100))
    label_cents = gross_cents - artist_cents

    outstanding_cents = max(0, int(round((advance_amount - recouped_amount) * 100)))
    recoup_cents = min(outstanding_cents, artist_cents)
    payable_cents = artist_cents - recoup_cents

    percentages = normalize_royalty_percentages(collaborators or {"artist": 100})
    if not percentages:
        raise ValidationError("No valid royalty recipients")

    amounts = _largest_remainder(payable_cents, percentages) if payable_cents else {
        name: 0 for name in percentages
    }
    shares: List[RoyaltyShare] = [
        RoyaltyShare(recipient=name, percentage=pct, amount=amounts[name] / 100)
        for name, pct in percentages.items()
    ]

    logger.debug("royalties: gross=%d label=%d recoup=%d payable=%d (cents)",
                 gross_cents, label_cents, recoup_cents, payable_cents)
    logger.info("Royalty statement: %s gross, %s recouped, %s paid to %d recipients",
                format_currency(gross_cents / 100), format_currency(recoup_cents / 100),
                format_currency(payable_cents / 100), len(shares))

    return RoyaltyDistribution(
        gross_revenue=gross_cents / 100,
        label_share=label_cents / 100,
        artist_share=artist_cents / 100,
        recouped_this_period=recoup_cents / 100,
        recoupment_outstanding=(outstanding_cents - recoup_cents) / 100,
        artist_payable=payable_cents / 100,
        shares=shares,
    )


def termination_fee(contract: Mapping[str, Any]) -> int:
    """Remaining quota value times the fee percentage, plus any unrecouped advance."""
    singles_left = max(0, number_or_zero(contract.get("single_quota"))
                       - number_or_zero(contract.get("singles_completed")))
    albums_left = max(0, number_or_zero(contract.get("album_quota"))
                      - number_or_zero(contract.get("albums_completed")))
    remaining_value = singles_left * SINGLE_QUOTA_VALUE + albums_left * ALBUM_QUOTA_VALUE

    unrecouped = max(0.0, number_or_zero(contract.get("advance_amount"))
                     - number_or_zero(contract.get("recouped_amount")))
    fee_pct = number_or_zero(contract.get("termination_fee_pct"))
    return int(round(remaining_value * fee_pct / 100 + unrecouped))


def contract_artist(contract: Mapping[str, Any]) -> Dict[str, str]:
    band = contract.get("bands") or {}
    profile = contract.get("profiles") or {}
    if band.get("name"):
        return {"name": band["name"], "type": "band"}
    if profile.get("display_name"):
        return {"name": profile["display_name"], "type": "solo"}
    return {"name": "Unassigned artist", "type": "unassigned"}


def contract_report(contract: Mapping[str, Any]) -> Dict[str, Any]:
    artist = contract_artist(contract)
    advance = number_or_zero(contract.get("advance_amount"))
    recouped = number_or_zero(contract.get("recouped_amount"))
    return {
        "id": contract.get("id"),
        "status": contract.get("status"),
        "artist_name": artist["name"],
        "entity_type": artist["type"],
        "lifetime_gross_revenue": number_or_zero(contract.get("lifetime_gross_revenue")),
        "lifetime_artist_payout": number_or_zero(contract.get("lifetime_artist_payout")),
        "lifetime_label_profit": number_or_zero(contract.get("lifetime_label_profit")),
        "advance_amount": advance,
        "recouped_amount": recouped,
        "recoupment_outstanding": max(0.0, advance - recouped),
        "last_statement_at": contract.get("last_statement_at"),
    }


def release_report(release: Mapping[str, Any], contract_name: str = "Unassigned contract") -> Dict[str, Any]:
    revenue = {ch: number_or_zero(release.get(f"{ch}_revenue")) for ch in REVENUE_CHANNELS}
    total = sum(revenue.values())

    gross = number_or_zero(release.get("gross_revenue"))
    if total <= 0 and gross > 0:
        # statement only carried a gross figure
        revenue["other"] += gross
        total = gross

    expenses = number_or_zero(release.get("promotion_budget")) + number_or_zero(release.get("masters_cost"))
    return {
        "id": release.get("id"),
        "title": release.get("title"),
        "status": release.get("status"),
        "release_date": release.get("release_date") or release.get("scheduled_date"),
        "contract_id": release.get("contract_id"),
        "contract_name": contract_name,
        **{f"{ch}_revenue": v for ch, v in revenue.items()},
        "total_revenue": total,
        "expense_total": expenses,
        "net_revenue": total - expenses,
    }


def label_totals(releases: List[Mapping[str, Any]], contracts: List[Mapping[str, Any]]) -> Dict[str, Any]:
    """Aggregate release and contract reports into a label's revenue overview."""
    keys = [f"{ch}_revenue" for ch in REVENUE_CHANNELS] + ["total_revenue", "expense_total", "net_revenue"]
    totals = {k: sum(r[k] for r in releases) for k in keys}

    return {
        "totals": totals,
        "channel_breakdown": [
            {"channel": CHANNEL_LABELS[ch], "value": totals[f"{ch}_revenue"]}
            for ch in REVENUE_CHANNELS
        ],
        "contract_totals": {
            k: sum(c[k] for c in contracts)
            for k in ("lifetime_gross_revenue", "lifetime_artist_payout", "lifetime_label_profit")
        },
        "stats": {
            "contract_count": len(contracts),
            "active_contract_count": sum(
                1 for c in contracts
                if (c.get("status") or "").lower() not in INACTIVE_CONTRACT_STATUSES
            ),
            "release_count": len(releases),
        },
    }
