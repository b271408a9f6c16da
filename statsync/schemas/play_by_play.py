from __future__ import annotations

from typing import Literal, Optional, Tuple, Union

from pydantic import BaseModel

Side = Literal["home", "away", "unknown"]


class _Frozen(BaseModel):
    class Config:
        frozen = True


class PlayerOutcome(_Frozen):
    name: Optional[str] = None
    external_uniform_id: Optional[str] = None
    out: bool = False
    scored: bool = False
    advanced_to_base: int = 0


class Play(_Frozen):
    batter: Optional[PlayerOutcome] = None
    runners: Tuple[PlayerOutcome, ...] = ()
    narrative: Optional[str] = None


class InningSummary(_Frozen):
    runs: int = 0
    hits: int = 0
    errors: int = 0
    left_on_base: int = 0


class Half(_Frozen):
    team: Optional[str] = None
    side: Side = "unknown"
    plays: Tuple[Play, ...] = ()
    summary: Optional[InningSummary] = None


class Inning(_Frozen):
    inning_number: int
    halves: Tuple[Half, ...] = ()


class LineScoreInning(_Frozen):
    inning: int
    runs: Union[int, Literal["X"]]  # "X": home half not played


class TeamLineScore(_Frozen):
    id: Optional[str] = None
    name: Optional[str] = None
    side: Side = "unknown"
    innings: Tuple[LineScoreInning, ...] = ()
    runs: int = 0
    hits: int = 0
    errors: int = 0
    left_on_base: int = 0


class PlayByPlay(_Frozen):
    format: str
    innings: Tuple[Inning, ...] = ()
    line_score: Optional[Tuple[TeamLineScore, ...]] = None
    total_plays: int = 0
