"""
Card identities for every game variant.

A card is identified by its content (chord type, function, progression,
interval or scale), an octave and a playback style; function cards also
carry the key quality. Ids are "_"-joined and parsed from the right
because content names may contain underscores ("vii_dim", "PERFECT_5TH").

Id formats:
    CHORD_TYPE         {chordType}_{octave}_{playbackMode}
    CHORD_FUNCTION     {function}_{keyQuality}_{octave}_{playbackMode}
    CHORD_PROGRESSION  {progression}_{octave}_{playbackMode}
    INTERVAL           {interval}_{octave}_{direction}
    SCALE              {scale}_{octave}_{direction}
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Type

from earbs.errors import InvalidCardIdentity


GroupingKey = Tuple[Optional[str], int, str]


class GameType(str, Enum):
    """Game variant; memory state is kept per (card, game type)."""
    CHORD_TYPE = "CHORD_TYPE"
    CHORD_FUNCTION = "CHORD_FUNCTION"
    CHORD_PROGRESSION = "CHORD_PROGRESSION"
    INTERVAL = "INTERVAL"
    SCALE = "SCALE"

    @property
    def display_name(self) -> str:
        return GAME_DISPLAY_NAMES[self]


GAME_DISPLAY_NAMES = {
    GameType.CHORD_TYPE: "Chord Type",
    GameType.CHORD_FUNCTION: "Function",
    GameType.CHORD_PROGRESSION: "Progression",
    GameType.INTERVAL: "Interval",
    GameType.SCALE: "Scale",
}


# ---- Vocabularies ----

class PlaybackMode(str, Enum):
    BLOCK = "BLOCK"
    ARPEGGIATED = "ARPEGGIATED"


class KeyQuality(str, Enum):
    MAJOR = "MAJOR"
    MINOR = "MINOR"


class ChordType(str, Enum):
    MAJOR = "MAJOR"
    MINOR = "MINOR"
    SUS2 = "SUS2"
    SUS4 = "SUS4"
    DOM7 = "DOM7"
    MAJ7 = "MAJ7"
    MIN7 = "MIN7"


class ChordFunction(str, Enum):
    """Roman-numeral functions; the tonic is never quizzed."""
    # Major key
    ii = "ii"
    iii = "iii"
    IV = "IV"
    V = "V"
    vi = "vi"
    vii_dim = "vii_dim"
    # Minor key
    ii_dim = "ii_dim"
    III = "III"
    iv = "iv"
    v = "v"
    VI = "VI"
    VII = "VII"

    @property
    def key_quality(self) -> KeyQuality:
        if self.name in ("ii", "iii", "IV", "V", "vi", "vii_dim"):
            return KeyQuality.MAJOR
        return KeyQuality.MINOR


class ProgressionType(str, Enum):
    I_IV_I_MAJOR = "I_IV_I_MAJOR"
    I_V_I_MAJOR = "I_V_I_MAJOR"
    I_IV_V_I_MAJOR = "I_IV_V_I_MAJOR"
    I_ii_V_I_MAJOR = "I_ii_V_I_MAJOR"
    I_vi_ii_V_MAJOR = "I_vi_ii_V_MAJOR"
    I_vi_ii_V_I_MAJOR = "I_vi_ii_V_I_MAJOR"
    I_vi_IV_V_I_MAJOR = "I_vi_IV_V_I_MAJOR"
    I_V_vi_IV_MAJOR = "I_V_vi_IV_MAJOR"
    I_vi_IV_V_MAJOR = "I_vi_IV_V_MAJOR"
    i_iv_i_MINOR = "i_iv_i_MINOR"
    i_v_i_MINOR = "i_v_i_MINOR"
    i_iv_v_i_MINOR = "i_iv_v_i_MINOR"
    i_iio_v_i_MINOR = "i_iio_v_i_MINOR"
    i_VI_iio_v_MINOR = "i_VI_iio_v_MINOR"
    i_VI_iio_v_i_MINOR = "i_VI_iio_v_i_MINOR"
    i_VI_iv_v_i_MINOR = "i_VI_iv_v_i_MINOR"
    i_v_VI_iv_MINOR = "i_v_VI_iv_MINOR"
    i_VI_iv_v_MINOR = "i_VI_iv_v_MINOR"


class IntervalType(str, Enum):
    MINOR_2ND = "MINOR_2ND"
    MAJOR_2ND = "MAJOR_2ND"
    MINOR_3RD = "MINOR_3RD"
    MAJOR_3RD = "MAJOR_3RD"
    PERFECT_4TH = "PERFECT_4TH"
    TRITONE = "TRITONE"
    PERFECT_5TH = "PERFECT_5TH"
    MINOR_6TH = "MINOR_6TH"
    MAJOR_6TH = "MAJOR_6TH"
    MINOR_7TH = "MINOR_7TH"
    MAJOR_7TH = "MAJOR_7TH"
    OCTAVE = "OCTAVE"


class IntervalDirection(str, Enum):
    ASCENDING = "ASCENDING"
    DESCENDING = "DESCENDING"
    HARMONIC = "HARMONIC"


class ScaleType(str, Enum):
    MAJOR = "MAJOR"
    NATURAL_MINOR = "NATURAL_MINOR"
    HARMONIC_MINOR = "HARMONIC_MINOR"
    MELODIC_MINOR = "MELODIC_MINOR"
    DORIAN = "DORIAN"
    MIXOLYDIAN = "MIXOLYDIAN"
    PHRYGIAN = "PHRYGIAN"
    LYDIAN = "LYDIAN"
    MAJOR_PENTATONIC = "MAJOR_PENTATONIC"
    MINOR_PENTATONIC = "MINOR_PENTATONIC"


class ScaleDirection(str, Enum):
    ASCENDING = "ASCENDING"
    DESCENDING = "DESCENDING"
    BOTH = "BOTH"


# ---- Per-game id layout ----

@dataclass(frozen=True)
class GameLayout:
    """How a game variant lays out and groups its card ids."""
    content: Type[Enum]
    mode: Type[Enum]
    has_key_quality: bool = False
    group_by_content: bool = False


GAME_LAYOUTS = {
    GameType.CHORD_TYPE: GameLayout(ChordType, PlaybackMode),
    GameType.CHORD_FUNCTION: GameLayout(ChordFunction, PlaybackMode, has_key_quality=True),
    GameType.CHORD_PROGRESSION: GameLayout(ProgressionType, PlaybackMode),
    GameType.INTERVAL: GameLayout(IntervalType, IntervalDirection, group_by_content=True),
    GameType.SCALE: GameLayout(ScaleType, ScaleDirection, group_by_content=True),
}


@dataclass(frozen=True)
class CardIdentity:
    """
    Immutable identity of one card within a game variant.

    `mode` is the playback mode for chord games and the direction for
    interval and scale games.
    """
    game_type: GameType
    content: str
    octave: int
    mode: str
    key_quality: Optional[str] = None

    @property
    def card_id(self) -> str:
        parts = [self.content]
        if self.key_quality is not None:
            parts.append(self.key_quality)
        parts.extend([str(self.octave), self.mode])
        return "_".join(parts)

    @property
    def group_key(self) -> Optional[str]:
        """Secondary grouping attribute, or None for games without one."""
        layout = GAME_LAYOUTS[self.game_type]
        if layout.has_key_quality:
            return self.key_quality
        if layout.group_by_content:
            return self.content
        return None

    @property
    def grouping_key(self) -> GroupingKey:
        return (self.group_key, self.octave, self.mode)

    @property
    def display_name(self) -> str:
        name = self.content.replace("_", " ")
        if self.key_quality is not None:
            name = f"{name} in {self.key_quality.lower()}"
        return f"{name} @ Oct {self.octave} ({self.mode.lower()})"


def parse_card_id(game_type: GameType, card_id: str) -> CardIdentity:
    """
    Parse a card id into its attributes.

    Raises:
        InvalidCardIdentity: if the id has too few parts, a non-integer
            octave, or a name outside the game's vocabulary
    """
    game_type = GameType(game_type)
    layout = GAME_LAYOUTS[game_type]
    tail = 3 if layout.has_key_quality else 2

    parts = card_id.split("_") if card_id else []
    if len(parts) <= tail:
        raise InvalidCardIdentity(card_id, f"expected at least {tail + 1} parts for {game_type.value}")

    mode_name = parts[-1]
    octave_text = parts[-2]
    key_quality = parts[-3] if layout.has_key_quality else None
    content_name = "_".join(parts[:-tail])

    try:
        octave = int(octave_text)
    except ValueError:
        raise InvalidCardIdentity(card_id, f"octave {octave_text!r} is not an integer") from None

    _check_member(layout.mode, mode_name, card_id)
    _check_member(layout.content, content_name, card_id)
    if key_quality is not None:
        _check_member(KeyQuality, key_quality, card_id)

    return CardIdentity(
        game_type=game_type,
        content=content_name,
        octave=octave,
        mode=mode_name,
        key_quality=key_quality,
    )


def _check_member(enum_cls: Type[Enum], name: str, card_id: str) -> None:
    if name not in enum_cls.__members__:
        raise InvalidCardIdentity(card_id, f"unknown {enum_cls.__name__} {name!r}")


def make_card_id(
    game_type: GameType,
    content: str,
    octave: int,
    mode: str,
    key_quality: Optional[str] = None
) -> str:
    """Build and validate a card id from its attributes."""
    identity = CardIdentity(
        game_type=GameType(game_type),
        content=_name(content),
        octave=int(octave),
        mode=_name(mode),
        key_quality=_name(key_quality) if key_quality is not None else None,
    )
    return parse_card_id(identity.game_type, identity.card_id).card_id


def _name(value) -> str:
    return value.value if isinstance(value, Enum) else str(value)
