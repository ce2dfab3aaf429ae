from __future__ import annotations

from typing import Literal

ToneMode = Literal["tactical", "mythic", "whimsical", "brutal", "minimalist"]

FALLBACK_LINE = "Steel and spellfire trade space. Pick the next decisive move."

NARRATION_VERBS = (
    "strike",
    "smash",
    "crack",
    "detonate",
    "burst",
    "snap",
    "slice",
    "slam",
    "flash",
    "shatter",
    "ignite",
    "freeze",
    "zap",
    "crash",
    "whirl",
    "boom",
    "bonk",
)

TONE_PREFIX: dict[str, str] = {
    "tactical": "Tactical read:",
    "mythic": "Mythic pulse:",
    "whimsical": "Wildly,",
    "brutal": "Hard.",
    "minimalist": "",
}

TONE_LINES: dict[str, tuple[str, ...]] = {
    "tactical": (
        "The supply line is open. Move now or lose leverage.",
        "Angles are clean for one turn. Use them.",
        "You have tempo. Spend it before they reset.",
    ),
    "mythic": (
        "The sky answers in lightning.",
        "Old names wake when steel meets oath.",
        "The ground remembers who stood here.",
    ),
    "whimsical": (
        "Someone is about to regret standing there.",
        "Luck trips over your boots and keeps running.",
        "That plan is ridiculous. It might work.",
    ),
    "brutal": (
        "It hits hard. Something cracks.",
        "Claws rake, armor sings, blood answers.",
        "One clean blow can end this.",
    ),
    "minimalist": (
        "Claws. Blood. Stone.",
        "Step. Strike. Breathe.",
        "No noise. Just impact.",
    ),
}

ENEMY_VOICE: dict[str, tuple[str, ...]] = {
    "aggressive": (
        "It commits.",
        "No hesitation.",
        "It lunges again.",
        "It wants the kill and does not hide it.",
    ),
    "cunning": (
        "It waits.",
        "It feints.",
        "It reads you.",
        "It is counting your openings.",
    ),
    "chaotic": (
        "It thrashes wildly.",
        "It overextends.",
        "It wobbles.",
        "Nothing about its footing makes sense.",
    ),
    "brutal": (
        "Bone cracks.",
        "Blood sprays.",
        "It hits hard.",
        "It leans its whole weight into the swing.",
    ),
    "whimsical": (
        "It bonks you.",
        "It wobbles.",
        "Someone regrets that tile.",
        "It seems delighted with itself.",
    ),
    "pack": (
        "It presses when you falter.",
        "The pack closes from two angles.",
        "It hunts the weak seam.",
    ),
}

SPELL_CLASSIC = (
    "Fireball",
    "Ice Shard",
    "Lightning Bolt",
    "Stone Spike",
    "Wind Slash",
    "Water Jet",
    "Light Beam",
    "Shadow Blink",
)

SPELL_ENHANCED = ("Greater", "Grand", "Burst", "Surge", "Strike", "Blast", "Nova", "Lance", "Wave")

SPELL_HEROIC = (
    "Inferno",
    "Tempest",
    "Radiant",
    "Storm",
    "Prism",
    "Glacier",
    "Starfire",
    "Skybreaker",
    "Emberstorm",
)

SPELL_MYTHIC = (
    "Cataclysm",
    "Supernova",
    "Celestial",
    "Omega",
    "Eternal",
    "Infinite",
    "Heavenfall",
    "Sunburst",
    "Moonflare",
)

SPELL_ABSURD = ("Ultra", "Hyper", "Turbo", "Supreme", "Deluxe", "EX", "Final", "Ultimate", "Maximum")

SPELL_WHIMSY = (
    "Sparkle",
    "Zappy",
    "Fizzy",
    "Boomy",
    "Twinkly",
    "Snappy",
    "Glowy",
    "Shiny",
    "Whirly",
    "Fluffy",
    "Crackly",
    "Zingy",
    "Peppy",
    "Bouncy",
)

HEROIC_TAILS = ("Lance", "Strike", "Nova", "Burst", "Judgment")
MYTHIC_BRIDGES = ("Stormbreaker", "Cataclysm", "Cascade", "Heavenfall", "Supernova")
ABSURD_SUFFIXES = ("EX", "Deluxe", "Maximum", "Final", "Ultimate")

SPECTACLE_FINISHERS = (
    "Heaven signs your name in lightning.",
    "The sky answers with a verdict.",
    "Reality buckles and the strike lands anyway.",
    "The field blinks white and then the damage speaks.",
)

# per event type phrasing variants; tried in seeded rotation when one is rejected
PASSTHROUGH_TEMPLATES: dict[str, tuple[str, ...]] = {
    "moved": (
        "{actor} shifts to ({x}, {y}).",
        "{actor} repositions to ({x}, {y}).",
        "{actor} slides over to ({x}, {y}).",
    ),
    "miss": (
        "{actor} misses {target}{detail}.",
        "{actor} swings wide of {target}{detail}.",
        "{target} slips past {actor}{detail}.",
    ),
    "healed": (
        "{actor} restores {amount} to {target}.",
        "{target} knits back {amount} health.",
        "{actor} patches {target} up for {amount}.",
    ),
    "power_gain": (
        "{actor} recovers {amount} MP.",
        "{actor} draws back {amount} power.",
        "Power floods back into {actor}, {amount} MP.",
    ),
    "power_drain": (
        "{actor} drains {amount} MP from {target}.",
        "{target} bleeds {amount} power to {actor}.",
        "{actor} siphons {amount} MP out of {target}.",
    ),
    "status_tick": (
        "{target} takes {amount} from {status}.",
        "{status} gnaws {amount} off {target}.",
        "{target} suffers {amount} as {status} bites.",
    ),
    "status_expired": (
        "{target}'s {status} fades.",
        "{status} lets go of {target}.",
        "{target} shakes off {status}.",
    ),
    "armor_shred": (
        "{actor} shreds {amount} armor from {target}.",
        "{target} loses {amount} armor to {actor}.",
        "{actor} peels {amount} armor off {target}.",
    ),
    "death": (
        "{target} drops and is out.",
        "{target} falls and does not rise.",
        "{target} is finished.",
    ),
    "item_used": (
        "{actor} uses {item}.",
        "{actor} reaches for {item}.",
        "{actor} cracks open {item}.",
    ),
}

STATUS_TEMPLATES = (
    "{actor} braces as {statuses} lock on {target}.",
    "{statuses} take hold of {target}.",
    "{target} is marked by {statuses}.",
)
