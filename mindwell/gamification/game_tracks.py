"""
Mini-game leveling tracks

Each wellness game (Focus Forest, Memory Match, ...) levels independently on
the geometric track curve. Tracks never interact; player XP is the sum of XP
earned across all tracks.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional
import logging

from mindwell.exceptions import ValidationError
from mindwell.gamification.catalog import GAME_TRACKS
from mindwell.gamification.xp_system import TRACK_CURVE, LevelCurve, award_xp, resolve_level
from mindwell.models.progression import GameStats, GameTrack

logger = logging.getLogger(__name__)


def new_track(curve: Optional[LevelCurve] = None) -> GameTrack:
    """Fresh level-1 track"""
    return refresh_track(GameTrack(), curve)


def refresh_track(track: GameTrack, curve: Optional[LevelCurve] = None) -> GameTrack:
    """Recompute the cached level fields from total_xp (stored values are ignored)"""
    progress = resolve_level(track.total_xp, curve or TRACK_CURVE)
    return track.model_copy(update={
        "level": progress.level,
        "xp_into_level": progress.xp_into_level,
        "xp_to_next_level": progress.xp_to_next_level,
    })


@dataclass(frozen=True)
class TrackUpdate:
    track: GameTrack
    leveled_up: bool


def add_track_xp(track: GameTrack, amount: int, curve: Optional[LevelCurve] = None) -> TrackUpdate:
    """
    Add XP to a track

    Returns:
        TrackUpdate with a new GameTrack; the input is not modified
    """
    award = award_xp(track.total_xp, amount, curve or TRACK_CURVE)
    updated = track.model_copy(update={
        "total_xp": award.new_total_xp,
        "level": award.progress.level,
        "xp_into_level": award.progress.xp_into_level,
        "xp_to_next_level": award.progress.xp_to_next_level,
    })
    return TrackUpdate(track=updated, leveled_up=award.leveled_up)


@dataclass(frozen=True)
class GameSessionResult:
    stats: GameStats
    track_name: str
    leveled_up: bool
    new_level: int


def record_game_session(
    stats: GameStats,
    track_name: str,
    xp_amount: int,
    played_on: Optional[date] = None,
    curve: Optional[LevelCurve] = None
) -> GameSessionResult:
    """
    Apply one finished game session to the user's game stats

    Raises:
        ValidationError: Unknown track name or negative XP
    """
    if track_name not in GAME_TRACKS:
        raise ValidationError(f"Unknown game track: '{track_name}'", field="track_name", value=track_name)

    current = stats.tracks.get(track_name) or new_track(curve)
    update = add_track_xp(current, xp_amount, curve)

    tracks = dict(stats.tracks)
    tracks[track_name] = update.track

    new_stats = stats.model_copy(update={
        "tracks": tracks,
        "player_xp": stats.player_xp + xp_amount,
        "total_games_played": stats.total_games_played + 1,
        "last_played": played_on or stats.last_played,
    })

    if update.leveled_up:
        logger.info(f"Game track {track_name} is now level {update.track.level}")

    return GameSessionResult(
        stats=new_stats,
        track_name=track_name,
        leveled_up=update.leveled_up,
        new_level=update.track.level,
    )
