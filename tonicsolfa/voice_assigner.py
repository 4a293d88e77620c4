"""VoiceAssigner: decides which SATB voice each line of solfa belongs to."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import reduce
from typing import Final

from tonicsolfa.key_tables import ALTO, BASS, SOPRANO, TENOR, VOICE_ORDER
from tonicsolfa.tokenizer import Tokenizer

# Names may be spaced from their separator ("Soprano :"); initials may not,
# so "s :m" stays the note sol.
SPACED_SEPARATOR: Final = r"\s*[:.=-]\s*"
TIGHT_SEPARATOR: Final = r"[:.=-]\s*"


@dataclass(frozen=True)
class VoiceIndicatorRule:
    """
    One row of the indicator table: a prefix form that names a voice.

    Attributes:
        voice:   Voice the prefix selects.
        form:    Prefix as typed ("soprano", "sop", "s").
        tier:    Human-readable rule tier, for debugging the dispatch.
        pattern: Compiled prefix-plus-separator pattern; initials only match
                 with the separator directly after the letter.
    """

    voice: str
    form: str
    tier: str
    pattern: re.Pattern[str]

    def match(self, line: str) -> re.Match[str] | None:
        return self.pattern.match(line)


def _rule(
    voice: str, form: str, tier: str, separator: str = SPACED_SEPARATOR
) -> VoiceIndicatorRule:
    return VoiceIndicatorRule(
        voice=voice,
        form=form,
        tier=tier,
        pattern=re.compile(rf"^{re.escape(form)}{separator}", re.IGNORECASE),
    )


#: Evaluated top to bottom, first match wins. Single letters come last and
#: need the separator right after them, so a line opening with the notes
#: "s" (sol) or "t" (ti), as in "s :m :d", is still music.
VOICE_INDICATOR_RULES: Final[tuple[VoiceIndicatorRule, ...]] = (
    _rule(SOPRANO, "soprano", "full name"),
    _rule(ALTO, "alto", "full name"),
    _rule(TENOR, "tenor", "full name"),
    _rule(BASS, "bass", "full name"),
    _rule(SOPRANO, "sop", "abbreviation"),
    _rule(ALTO, "alt", "abbreviation"),
    _rule(TENOR, "ten", "abbreviation"),
    _rule(BASS, "bas", "abbreviation"),
    _rule(SOPRANO, "s", "initial", TIGHT_SEPARATOR),
    _rule(ALTO, "a", "initial", TIGHT_SEPARATOR),
    _rule(TENOR, "t", "initial", TIGHT_SEPARATOR),
    _rule(BASS, "b", "initial", TIGHT_SEPARATOR),
)


@dataclass(frozen=True)
class LineIndicator:
    """A line split into its declared voice (if any) and its music."""

    voice: str | None
    body: str


@dataclass(frozen=True)
class _ExplicitState:
    """Accumulator for explicit-mode assignment."""

    current_voice: str
    assigned: tuple[tuple[str, str], ...] = ()


class VoiceAssigner:
    """
    Assigns lines to the four canonical voices.

    Two mutually exclusive modes, chosen once per input:

    - **Explicit**: at least one line starts with a voice indicator. Each
      indicator sets the current voice; unprefixed lines continue it.
      Lines before the first indicator go to the Soprano.
    - **Positional**: no indicators anywhere. Lines cycle through
      Soprano, Alto, Tenor, Bass.
    """

    def __init__(
        self,
        tokenizer: Tokenizer | None = None,
        rules: tuple[VoiceIndicatorRule, ...] = VOICE_INDICATOR_RULES,
    ) -> None:
        self.tokenizer = tokenizer or Tokenizer()
        self.rules = rules

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _fold_explicit(self, state: _ExplicitState, line: LineIndicator) -> _ExplicitState:
        voice = line.voice or state.current_voice
        return _ExplicitState(current_voice=voice, assigned=state.assigned + ((voice, line.body),))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def classify(self, line: str) -> LineIndicator:
        """Apply the indicator table to one line."""
        for rule in self.rules:
            match = rule.match(line)
            if match:
                return LineIndicator(voice=rule.voice, body=line[match.end():].strip())
        return LineIndicator(voice=None, body=line)

    def assign_lines(self, lines: tuple[str, ...] | list[str]) -> list[tuple[str, str]]:
        """Return (voice, music) for every line, in source order."""
        classified = [self.classify(line) for line in lines]

        if any(item.voice is not None for item in classified):
            final = reduce(self._fold_explicit, classified, _ExplicitState(current_voice=SOPRANO))
            return list(final.assigned)

        return [
            (VOICE_ORDER[index % len(VOICE_ORDER)], item.body)
            for index, item in enumerate(classified)
        ]

    def assign(self, lines: tuple[str, ...] | list[str]) -> dict[str, list[list[str]]]:
        """
        Group the measures of every line under its voice.

        Returns:
            Mapping of each SATB voice (in SATB order) to its measures, each
            measure being its list of syllable tokens. Voices that received
            no lines map to an empty list.
        """
        voices: dict[str, list[list[str]]] = {voice: [] for voice in VOICE_ORDER}
        for voice, body in self.assign_lines(lines):
            for measure in self.tokenizer.split_measures(body):
                tokens = self.tokenizer.split_tokens(measure)
                if tokens:
                    voices[voice].append(tokens)
        return voices
