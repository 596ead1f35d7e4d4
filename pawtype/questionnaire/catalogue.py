# pawtype/questionnaire/catalogue.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from pawtype.app.errors import UnknownCategory
from pawtype.questionnaire.classifier import VALID_CODES


@dataclass(frozen=True)
class ResultProfile:
    code: str
    nickname: str
    summary: str
    traits: str
    compatible_owner: str
    caution: str
    recommended_activity: str
    care_guide: str


# ---------------------------------------------------------------------
# Profile content per category code
# ---------------------------------------------------------------------
_PROFILES: Dict[str, Dict[str, str]] = {
    "ESTJ": {
        "nickname": "The Patrol Captain",
        "summary": "Outgoing and orderly; keeps the whole household on schedule.",
        "traits": "Confident, routine-loving, quick to take charge of the house.",
        "compatible_owner": "Consistent owners who enjoy structured days.",
        "caution": "Can get bossy with other pets when rules are unclear.",
        "recommended_activity": "Obedience classes and timed fetch games.",
        "care_guide": "Keep feeding and walk times fixed; praise good leadership.",
    },
    "ESTP": {
        "nickname": "The Thrill Seeker",
        "summary": "Bold and physical; always first to jump into the action.",
        "traits": "Energetic, curious about people, easily bored indoors.",
        "compatible_owner": "Active owners with time for long outings.",
        "caution": "Impulsive dashes; keep recall training sharp.",
        "recommended_activity": "Agility courses and off-leash running in safe areas.",
        "care_guide": "Plenty of daily exercise and chew toys for downtime.",
    },
    "ESFJ": {
        "nickname": "The Welcome Committee",
        "summary": "Sociable and affectionate; thrives on a warm routine.",
        "traits": "Friendly to everyone, attentive to moods, loves predictability.",
        "compatible_owner": "Families who are home often and keep regular hours.",
        "caution": "May develop separation anxiety if left alone for long.",
        "recommended_activity": "Group walks and gentle play dates.",
        "care_guide": "Short absences at first; leave a worn shirt for comfort.",
    },
    "ESFP": {
        "nickname": "The Party Starter",
        "summary": "Playful and expressive; loves an audience.",
        "traits": "Cheerful, attention-seeking, easily excited by visitors.",
        "compatible_owner": "Lively households that enjoy company.",
        "caution": "Over-excitement can turn into jumping on guests.",
        "recommended_activity": "Trick training and interactive toys.",
        "care_guide": "Reward calm greetings; keep sessions short and fun.",
    },
    "ENTJ": {
        "nickname": "The Pack Strategist",
        "summary": "Clever and determined; plans how to get what it wants.",
        "traits": "Independent problem solver, confident, goal-driven.",
        "compatible_owner": "Experienced owners who set clear boundaries.",
        "caution": "Tests limits; inconsistency is quickly exploited.",
        "recommended_activity": "Puzzle feeders and scent work.",
        "care_guide": "Firm, fair rules and regular mental challenges.",
    },
    "ENTP": {
        "nickname": "The Escape Artist",
        "summary": "Inventive and mischievous; every gate is a riddle.",
        "traits": "Curious, inventive, restless with repetition.",
        "compatible_owner": "Owners with a sense of humour and secure fences.",
        "caution": "Gets into cupboards and bins when bored.",
        "recommended_activity": "Rotating puzzle toys and new walking routes.",
        "care_guide": "Pet-proof the home and vary daily enrichment.",
    },
    "ENFJ": {
        "nickname": "The Family Guardian",
        "summary": "Warm and protective; looks after every member of the home.",
        "traits": "Devoted, sensitive to people, organises its day around yours.",
        "compatible_owner": "Close-knit households with children or other pets.",
        "caution": "May over-guard family members from strangers.",
        "recommended_activity": "Family outings and cooperative games.",
        "care_guide": "Socialise early and keep introductions calm.",
    },
    "ENFP": {
        "nickname": "The Sunshine Explorer",
        "summary": "Enthusiastic and imaginative; every day is an adventure.",
        "traits": "Affectionate, spontaneous, loves novelty and people.",
        "compatible_owner": "Flexible owners who enjoy trying new things together.",
        "caution": "Short attention span during training.",
        "recommended_activity": "Hiking new trails and hide-and-seek games.",
        "care_guide": "Keep training playful and full of variety.",
    },
    "ISTJ": {
        "nickname": "The Loyal Timekeeper",
        "summary": "Calm and dependable; knows the household clock by heart.",
        "traits": "Reserved, reliable, deeply attached to routine.",
        "compatible_owner": "Quiet owners with steady daily schedules.",
        "caution": "Stressed by moving house or sudden schedule changes.",
        "recommended_activity": "Regular walks on familiar routes.",
        "care_guide": "Introduce changes gradually and keep a safe den.",
    },
    "ISTP": {
        "nickname": "The Quiet Investigator",
        "summary": "Independent and observant; figures things out alone.",
        "traits": "Self-sufficient, practical, selective about affection.",
        "compatible_owner": "Owners who respect personal space.",
        "caution": "Dislikes being handled when not in the mood.",
        "recommended_activity": "Snuffle mats and solo foraging games.",
        "care_guide": "Let it approach first; offer quiet enrichment.",
    },
    "ISFJ": {
        "nickname": "The Gentle Shadow",
        "summary": "Devoted and soft-hearted; follows you from room to room.",
        "traits": "Loyal, gentle, comforted by familiar people and places.",
        "compatible_owner": "Caring owners who are home most of the day.",
        "caution": "Can be timid around loud strangers.",
        "recommended_activity": "Cuddle time and calm indoor play.",
        "care_guide": "Keep a predictable routine and a cosy resting spot.",
    },
    "ISFP": {
        "nickname": "The Free Spirit",
        "summary": "Sweet and easygoing; lives in the moment.",
        "traits": "Gentle, sensory-driven, relaxed about schedules.",
        "compatible_owner": "Laid-back owners who enjoy slow strolls.",
        "caution": "Sensitive to harsh correction.",
        "recommended_activity": "Leisurely sniff walks and sunbathing breaks.",
        "care_guide": "Use soft praise and let it explore at its own pace.",
    },
    "INTJ": {
        "nickname": "The Mastermind",
        "summary": "Thoughtful and strategic; watches before it acts.",
        "traits": "Reserved, intelligent, prefers its own plans.",
        "compatible_owner": "Patient owners who enjoy training challenges.",
        "caution": "Ignores commands it sees no point in.",
        "recommended_activity": "Advanced puzzle toys and clicker training.",
        "care_guide": "Explain with rewards, not repetition.",
    },
    "INTP": {
        "nickname": "The Dreamy Thinker",
        "summary": "Curious but low-key; happiest exploring ideas quietly.",
        "traits": "Independent, observant, unpredictable routines.",
        "compatible_owner": "Owners who enjoy a quiet, flexible home.",
        "caution": "May skip meals when absorbed in something.",
        "recommended_activity": "Window watching and novel scent trails.",
        "care_guide": "Monitor food intake and rotate new objects to examine.",
    },
    "INFJ": {
        "nickname": "The Soul Reader",
        "summary": "Intuitive and caring; senses your mood before you do.",
        "traits": "Empathetic, reserved with strangers, likes calm order.",
        "compatible_owner": "Gentle owners who value a peaceful home.",
        "caution": "Absorbs household stress and may withdraw.",
        "recommended_activity": "Quiet bonding sessions and slow walks.",
        "care_guide": "Provide a retreat space and keep the atmosphere calm.",
    },
    "INFP": {
        "nickname": "The Daydreamer",
        "summary": "Tender and imaginative; has a rich inner world.",
        "traits": "Shy, affectionate with its people, spontaneous.",
        "compatible_owner": "Understanding owners who offer reassurance.",
        "caution": "Easily startled by noise and crowds.",
        "recommended_activity": "Gentle play with soft toys at home.",
        "care_guide": "Build confidence with small, positive new experiences.",
    },
}


def _build_catalogue() -> Dict[str, ResultProfile]:
    catalogue = {code: ResultProfile(code=code, **fields) for code, fields in _PROFILES.items()}
    missing = sorted(set(VALID_CODES) - set(catalogue))
    if missing:
        raise RuntimeError(f"Result catalogue is missing codes: {missing}")
    return catalogue


RESULT_CATALOGUE: Dict[str, ResultProfile] = _build_catalogue()


def get_profile(code: str) -> ResultProfile:
    try:
        return RESULT_CATALOGUE[code]
    except KeyError:
        raise UnknownCategory(f"No result profile for category code: {code!r}") from None


def list_codes() -> List[str]:
    return sorted(RESULT_CATALOGUE)
