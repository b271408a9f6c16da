"""Parse PrestoSports event-stats markup into play-by-play and line score models.

Layout of the sections we read::

    <plays format="summary">
      <inning number="1">
        <batting id="Visitors" vh="V">
          <play>
            <batter name="Smith, J" uni="12" out="0" scored="1" tobase="4"/>
            <runner name="Doe, A" uni="7" out="1" tobase="0"/>
            <narrative text="J. Smith homered to left field"/>
          </play>
          <innsummary r="1" h="1" e="0" lob="0"/>
        </batting>
      </inning>
    </plays>
    <team vh="H" id="home" name="Home U">
      <linescore runs="3" hits="6" errs="1" lob="5">
        <lineinn inn="1" score="0"/> ... <lineinn inn="9" score="X"/>
      </linescore>
    </team>

The provider publishes no schema, so every attribute is optional and
numbers fall back to 0.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from statsync.schemas.play_by_play import (Half, Inning, InningSummary,
                                           LineScoreInning, Play, PlayByPlay,
                                           PlayerOutcome, Side, TeamLineScore)

DEFAULT_FORMAT = "summary"
NOT_PLAYED = "X"

_SIDES = {"V": "away", "H": "home"}
_LEADING_INT = re.compile(r"\s*([-+]?\d+)")


def _to_int(value: Optional[str], default: int = 0) -> int:
    if value is None:
        return default
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else default


def _side(code: Optional[str]) -> Side:
    return _SIDES.get((code or "").strip().upper(), "unknown")


def _player(tag: Tag) -> PlayerOutcome:
    return PlayerOutcome(
        name=tag.get("name") or None,
        external_uniform_id=tag.get("uni") or None,
        out=_to_int(tag.get("out")) == 1,
        scored=_to_int(tag.get("scored")) == 1,
        advanced_to_base=_to_int(tag.get("tobase")),
    )


def _summary(tag: Tag) -> InningSummary:
    return InningSummary(
        runs=_to_int(tag.get("r")),
        hits=_to_int(tag.get("h")),
        errors=_to_int(tag.get("e")),
        left_on_base=_to_int(tag.get("lob")),
    )


def _play(tag: Tag) -> Play:
    batter = tag.find("batter")
    narrative_tag = tag.find("narrative")
    narrative = None
    if narrative_tag is not None:
        narrative = narrative_tag.get("text") or narrative_tag.get_text(strip=True) or None

    return Play(
        batter=_player(batter) if batter is not None else None,
        runners=tuple(_player(runner) for runner in tag.find_all("runner")),
        narrative=narrative,
    )


def _inning(tag: Tag, position: int) -> Inning:
    halves: List[Dict[str, Any]] = []

    # Document order matters: an inning-level <innsummary> belongs to the
    # most recent half parsed before it that still lacks a summary.
    for node in tag.find_all(["batting", "innsummary"]):
        if node.name == "batting":
            summary = node.find("innsummary")
            halves.append(
                {
                    "team": node.get("id") or None,
                    "side": _side(node.get("vh")),
                    "plays": tuple(_play(p) for p in node.find_all("play")),
                    "summary": _summary(summary) if summary is not None else None,
                }
            )
        elif node.find_parent("batting") is None:
            for half in reversed(halves):
                if half["summary"] is None:
                    half["summary"] = _summary(node)
                    break

    number = tag.get("number")
    return Inning(
        inning_number=_to_int(number, default=position) if number else position,
        halves=tuple(Half(**half) for half in halves),
    )


def _line_score(soup: BeautifulSoup) -> Optional[Tuple[TeamLineScore, ...]]:
    teams = []
    for team in soup.find_all("team"):
        linescore = team.find("linescore")
        if linescore is None:
            continue

        innings = []
        for lineinn in linescore.find_all("lineinn"):
            score = (lineinn.get("score") or "").strip()
            innings.append(
                LineScoreInning(
                    inning=_to_int(lineinn.get("inn"), default=len(innings) + 1) or len(innings) + 1,
                    runs=NOT_PLAYED if score.upper() == NOT_PLAYED else _to_int(score),
                )
            )

        teams.append(
            TeamLineScore(
                id=team.get("id") or None,
                name=team.get("name") or None,
                side=_side(team.get("vh")),
                innings=tuple(innings),
                runs=_to_int(linescore.get("runs")),
                hits=_to_int(linescore.get("hits")),
                errors=_to_int(linescore.get("errs")),
                left_on_base=_to_int(linescore.get("lob")),
            )
        )

    return tuple(teams) if teams else None


def parse_line_score(markup: Any) -> Optional[Tuple[TeamLineScore, ...]]:
    """Per-team line scores, or ``None`` when the payload carries none.

    Independent of the plays section: final box scores often have a line
    score and no play-by-play.
    """
    if not markup or not isinstance(markup, str):
        return None
    return _line_score(BeautifulSoup(markup, "html.parser"))


def parse_play_by_play(markup: Any) -> Optional[PlayByPlay]:
    """Parse the ``<plays>`` section of an event-stats payload.

    Returns ``None`` for non-string input or when the payload has no plays
    section, or one without innings (a self-closed ``<plays/>``); that is
    normal for games the provider did not score live.
    """
    if not markup or not isinstance(markup, str):
        return None

    soup = BeautifulSoup(markup, "html.parser")
    plays = soup.find("plays")
    if plays is None:
        return None

    inning_tags = plays.find_all("inning")
    if not inning_tags:
        return None

    innings = tuple(_inning(tag, position) for position, tag in enumerate(inning_tags, start=1))

    return PlayByPlay(
        format=plays.get("format") or DEFAULT_FORMAT,
        innings=innings,
        line_score=_line_score(soup),
        total_plays=sum(len(half.plays) for inning in innings for half in inning.halves),
    )
