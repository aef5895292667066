"""
Option Chain Snapshot Model

Immutable per-cycle view of an instrument's option chain as handed to the
gamma exposure calculator:
- OptionContract: one call or put with its Greeks
- OptionChainSnapshot: calls + puts + underlying price at a point in time
- validate_option_chain: depth / sanity report used before gamma analysis

Snapshots are never mutated. Each evaluation cycle builds a new one, usually
from collector records (list of dicts) or a pandas DataFrame.
"""

import logging
import math
from dataclasses import dataclass, field, asdict
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# Strikes closer than this are treated as the same strike
STRIKE_TOLERANCE = 0.01


class InvalidChainError(Exception):
    """Raised when option chain data fails basic sanity checks."""
    pass


def _parse_expiry(value: Any) -> date:
    """Accept date, datetime, pandas Timestamp or ISO string"""
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        return date.fromisoformat(value[:10])
    raise InvalidChainError(f"Unparseable expiry: {value!r}")


def _first(record: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return default


@dataclass(frozen=True)
class OptionContract:
    """Single option contract captured in a snapshot"""
    strike: float
    expiry: date
    option_type: str = 'call'
    open_interest: int = 0
    volume: int = 0
    implied_volatility: float = 0.0
    delta: float = 0.0
    gamma: float = 0.0
    theta: float = 0.0
    vega: float = 0.0

    def __post_init__(self):
        if self.option_type not in ('call', 'put'):
            raise InvalidChainError(f"option_type must be 'call' or 'put', got {self.option_type!r}")
        if self.strike <= 0:
            raise InvalidChainError(f"Strike must be positive, got {self.strike}")
        if self.open_interest < 0 or self.volume < 0:
            raise InvalidChainError(
                f"Negative open interest/volume at strike {self.strike}: "
                f"oi={self.open_interest}, volume={self.volume}"
            )

    @property
    def is_call(self) -> bool:
        return self.option_type == 'call'

    @property
    def has_usable_gamma(self) -> bool:
        """Contract can contribute to gamma exposure"""
        return self.open_interest > 0 and math.isfinite(self.gamma)

    @classmethod
    def from_dict(cls, record: Dict[str, Any], option_type: Optional[str] = None) -> 'OptionContract':
        """
        Build a contract from a collector record.

        Accepts both snake_case and camelCase field names
        (open_interest/openInterest, implied_volatility/iv, expiration/expiry...).
        """
        kind = option_type or str(_first(record, 'option_type', 'type', default='call')).lower()
        return cls(
            strike=float(_first(record, 'strike', default=0)),
            expiry=_parse_expiry(_first(record, 'expiry', 'expiration', 'expiration_date', 'expirationDate')),
            option_type=kind,
            open_interest=int(_first(record, 'open_interest', 'openInterest', 'oi', default=0) or 0),
            volume=int(_first(record, 'volume', default=0) or 0),
            implied_volatility=float(_first(record, 'implied_volatility', 'impliedVolatility', 'iv', default=0) or 0),
            delta=float(_first(record, 'delta', default=0) or 0),
            gamma=float(_first(record, 'gamma', default=0) or 0),
            theta=float(_first(record, 'theta', default=0) or 0),
            vega=float(_first(record, 'vega', default=0) or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['expiry'] = self.expiry.isoformat()
        return data


@dataclass(frozen=True)
class OptionChainSnapshot:
    """
    Immutable option chain for one instrument at one point in time.

    ``calls`` and ``puts`` are stored as tuples; lists passed in are converted.
    """
    symbol: str
    underlying_price: float
    calls: Tuple[OptionContract, ...] = ()
    puts: Tuple[OptionContract, ...] = ()
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if not self.underlying_price or self.underlying_price <= 0:
            raise InvalidChainError(f"{self.symbol}: underlying price must be positive, got {self.underlying_price}")
        object.__setattr__(self, 'calls', tuple(self.calls))
        object.__setattr__(self, 'puts', tuple(self.puts))

    # ---------------------------------------------------------------- builders

    @classmethod
    def from_records(
        cls,
        symbol: str,
        underlying_price: float,
        records: Iterable[Dict[str, Any]],
        timestamp: Optional[datetime] = None
    ) -> 'OptionChainSnapshot':
        """
        Build a snapshot from a flat list of contract dicts.

        Records need an ``option_type`` (or ``type``) of call/put. Records that
        fail validation are skipped and logged, not fatal.
        """
        calls: List[OptionContract] = []
        puts: List[OptionContract] = []
        skipped = 0

        for record in records:
            try:
                contract = OptionContract.from_dict(record)
            except (InvalidChainError, TypeError, ValueError) as e:
                skipped += 1
                logger.debug(f"{symbol}: skipping contract record {record!r}: {e}")
                continue
            (calls if contract.is_call else puts).append(contract)

        if skipped:
            logger.warning(f"{symbol}: skipped {skipped} invalid contract records")

        return cls(
            symbol=symbol,
            underlying_price=float(underlying_price),
            calls=tuple(calls),
            puts=tuple(puts),
            timestamp=timestamp or datetime.now(),
        )

    @classmethod
    def from_dataframe(
        cls,
        symbol: str,
        underlying_price: float,
        df: pd.DataFrame,
        timestamp: Optional[datetime] = None
    ) -> 'OptionChainSnapshot':
        """Build a snapshot from a DataFrame with one row per contract"""
        if df is None or df.empty:
            return cls(symbol=symbol, underlying_price=float(underlying_price), timestamp=timestamp or datetime.now())

        frame = df.copy()
        frame.columns = [str(c).strip() for c in frame.columns]
        numeric_cols = [c for c in ('open_interest', 'volume', 'gamma', 'delta', 'theta', 'vega',
                                    'implied_volatility') if c in frame.columns]
        frame[numeric_cols] = frame[numeric_cols].fillna(0)
        records = frame.to_dict('records')
        return cls.from_records(symbol, underlying_price, records, timestamp)

    # ---------------------------------------------------------------- queries

    def contracts(self) -> List[OptionContract]:
        return list(self.calls) + list(self.puts)

    def strikes(self) -> List[float]:
        """Sorted unique strikes across calls and puts"""
        return sorted({c.strike for c in self.contracts()})

    def usable_strikes(self) -> List[float]:
        """Strikes with at least one contract carrying open interest and finite gamma"""
        return sorted({c.strike for c in self.contracts() if c.has_usable_gamma})

    def total_open_interest(self) -> int:
        return sum(c.open_interest for c in self.contracts())

    def total_volume(self) -> int:
        return sum(c.volume for c in self.contracts())

    def open_interest_by_strike(self) -> Dict[float, int]:
        oi_by_strike: Dict[float, int] = {}
        for contract in self.contracts():
            oi_by_strike[contract.strike] = oi_by_strike.get(contract.strike, 0) + contract.open_interest
        return oi_by_strike

    def contracts_at_strike(self, strike: float) -> Tuple[List[OptionContract], List[OptionContract]]:
        """(calls, puts) listed at ``strike``"""
        calls = [c for c in self.calls if abs(c.strike - strike) < STRIKE_TOLERANCE]
        puts = [p for p in self.puts if abs(p.strike - strike) < STRIKE_TOLERANCE]
        return calls, puts

    def open_interest_at_strike(self, strike: float) -> int:
        calls, puts = self.contracts_at_strike(strike)
        return sum(c.open_interest for c in calls) + sum(p.open_interest for p in puts)

    def open_interest_near(self, level: float, band_pct: float) -> int:
        """Open interest of contracts within ``band_pct`` of ``level``"""
        if level <= 0:
            return 0
        return sum(
            c.open_interest for c in self.contracts()
            if abs(c.strike - level) / level <= band_pct
        )

    def nearest_expiry(self) -> Optional[date]:
        expiries = [c.expiry for c in self.contracts()]
        return min(expiries) if expiries else None

    def days_to_nearest_expiry(self, as_of: Optional[datetime] = None, default: int = 30) -> int:
        """
        Whole days (rounded up) from ``as_of`` (snapshot time by default) to the
        nearest expiry. Never negative; ``default`` when the chain is empty.
        """
        nearest = self.nearest_expiry()
        if nearest is None:
            return default

        reference = as_of or self.timestamp
        expiry_dt = datetime.combine(nearest, time.min, tzinfo=reference.tzinfo)
        days = math.ceil((expiry_dt - reference).total_seconds() / 86400)
        return max(0, days)

    def gamma_arrays(self) -> Dict[str, np.ndarray]:
        """
        Column arrays for vectorized exposure evaluation.

        ``sign`` is -1 for calls (dealers short) and +1 for puts (dealers long).
        """
        contracts = [c for c in self.contracts() if c.has_usable_gamma]
        return {
            'strike': np.array([c.strike for c in contracts], dtype=float),
            'gamma': np.array([c.gamma for c in contracts], dtype=float),
            'open_interest': np.array([c.open_interest for c in contracts], dtype=float),
            'sign': np.array([-1.0 if c.is_call else 1.0 for c in contracts], dtype=float),
        }

    def to_frame(self) -> pd.DataFrame:
        """One row per contract"""
        rows = [c.to_dict() for c in self.contracts()]
        columns = ['strike', 'expiry', 'option_type', 'open_interest', 'volume',
                   'implied_volatility', 'delta', 'gamma', 'theta', 'vega']
        return pd.DataFrame(rows, columns=columns)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol,
            'underlying_price': self.underlying_price,
            'timestamp': self.timestamp.isoformat(),
            'calls': [c.to_dict() for c in self.calls],
            'puts': [p.to_dict() for p in self.puts],
        }


def validate_option_chain(snapshot: Optional[OptionChainSnapshot], min_strikes: int = 3) -> Dict[str, Any]:
    """
    Check that a snapshot has enough depth for gamma analysis.

    Returns:
        {'valid': bool, 'issues': [str], 'stats': {...}}
    """
    issues: List[str] = []

    if snapshot is None:
        return {'valid': False, 'issues': ['No option chain provided'], 'stats': {}}

    usable = snapshot.usable_strikes()
    stats = {
        'symbol': snapshot.symbol,
        'total_contracts': len(snapshot.calls) + len(snapshot.puts),
        'calls': len(snapshot.calls),
        'puts': len(snapshot.puts),
        'unique_strikes': len(snapshot.strikes()),
        'usable_strikes': len(usable),
        'total_open_interest': snapshot.total_open_interest(),
        'total_volume': snapshot.total_volume(),
    }

    if stats['total_contracts'] == 0:
        issues.append('Option chain is empty')
    if len(usable) < min_strikes:
        issues.append(f"Only {len(usable)} usable strikes (need {min_strikes})")
    if stats['total_open_interest'] == 0 and stats['total_contracts'] > 0:
        issues.append('No open interest on any contract')

    non_finite = [c.strike for c in snapshot.contracts() if not math.isfinite(c.gamma)]
    if non_finite:
        issues.append(f"{len(non_finite)} contracts with non-finite gamma")

    return {'valid': len(usable) >= min_strikes, 'issues': issues, 'stats': stats}
