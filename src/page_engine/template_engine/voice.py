"""
Voice-search fragments: short spoken-style answers and voice FAQs.

Every answer is kept under 50 words. Answers only use record fields; a
missing field drops the sentence that would have used it.
"""

import re
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from src.common.models import Intent

from .helpers import availability, labels
from .models import FAQEntry, PageData

MAX_VOICE_WORDS = 50
TRUNCATED_VOICE_WORDS = 45
MAX_VOICE_FAQS = 8

_QUESTION_STOPWORDS = frozenset({
    "what", "when", "where", "who", "why", "how", "is", "are", "do", "does",
    "can", "i", "you", "your", "the", "a", "an", "to", "of", "for", "in",
    "on", "at", "and", "or", "it", "they", "their", "there", "any", "have",
})


@dataclass
class VoiceAnswers:
    hours: str
    location: str
    contact: str
    services: str
    general: str

    def to_dict(self) -> dict:
        return {
            "hours": self.hours,
            "location": self.location,
            "contact": self.contact,
            "services": self.services,
            "general": self.general,
        }


def optimize_answer_for_voice(answer: str) -> str:
    """Trim to voice length and spell out symbols assistants read badly."""
    text = " ".join((answer or "").split())
    text = re.sub(r"\s&\s", " and ", text)
    text = re.sub(r"\bw/\s*", "with ", text)
    text = re.sub(r"\s@\s", " at ", text)
    words = text.split(" ")
    if len(words) >= MAX_VOICE_WORDS:
        text = " ".join(words[:TRUNCATED_VOICE_WORDS]).rstrip(",.;:") + "..."
    return text


def format_phone_for_voice(phone: Optional[str]) -> str:
    """Group digits the way a person reads them: "206 555 0100"."""
    if not phone:
        return ""
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 10:
        return f"{digits[:3]} {digits[3:6]} {digits[6:]}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"1 {digits[1:4]} {digits[4:7]} {digits[7:]}"
    return phone


def extract_keywords_from_question(question: str, limit: int = 3) -> list[str]:
    """Trigger words for an author FAQ that carries none."""
    words = re.findall(r"[a-z0-9']+", (question or "").lower())
    keywords = [w for w in words if w not in _QUESTION_STOPWORDS and len(w) > 2]
    return keywords[:limit]


# --- Answers ---

def _location_phrase(page: PageData) -> str:
    return page.business.location


def hours_answer(page: PageData, now: datetime) -> str:
    business = page.business
    name = business.name
    status = availability(business, now)
    phone = format_phone_for_voice(business.phone)

    if status.state == "closed_emergency":
        text = f"{name} is temporarily closed due to an emergency. Please check back later."
    elif status.state == "closed_holiday":
        text = f"{name} is closed today for a holiday. Regular hours resume tomorrow."
    elif status.state == "temporarily_closed":
        text = f"{name} is temporarily closed."
        if phone:
            text += f" Call {phone} for updates."
    elif status.state == "open":
        text = f"{name} is open now until {status.closes_at}."
    elif status.state == "closed":
        text = f"{name} is currently closed."
        if business.hours:
            text += f" Regular hours are {business.hours}."
        elif phone:
            text += f" You can call {phone} for hours."
    elif business.hours:
        text = f"{name}'s hours are {business.hours}."
    elif phone:
        text = f"Call {name} at {phone} to confirm today's hours."
    else:
        text = f"Contact {name} to confirm today's hours."

    if page.update and page.update.special_hours_today and not status.is_override:
        text += f" Today: {page.update.special_hours_today}."
    return optimize_answer_for_voice(text)


def location_answer(page: PageData) -> str:
    business = page.business
    parts = [f"{business.name} is located"]
    if business.address_street:
        parts.append(f"at {business.address_street}")
    if _location_phrase(page):
        parts.append(f"in {_location_phrase(page)}")
    text = " ".join(parts) + "."
    details = business.service_area_details
    if isinstance(details, dict):
        primary_city = details.get("primary_city")
        if primary_city and primary_city != business.address_city:
            text += f" They also serve the {primary_city} area."
    elif business.service_area:
        text += f" They serve {business.service_area}."
    if business.parking_info:
        text += f" Parking: {business.parking_info}."
    return optimize_answer_for_voice(text)


def contact_answer(page: PageData) -> str:
    business = page.business
    methods = []
    if business.phone:
        methods.append(f"call {format_phone_for_voice(business.phone)}")
    if business.website:
        methods.append("visit their website")
    if business.email:
        methods.append("send them an email")
    if methods:
        text = f"To reach {business.name}, you can {' or '.join(methods)}."
    else:
        text = f"{business.name} is in {_location_phrase(page)}."
    return optimize_answer_for_voice(text)


def services_answer(page: PageData) -> str:
    business = page.business
    text = f"{business.name} is a {business.category_display.lower()} business"
    services = labels(business.services)[:3]
    if services:
        text += f" offering {', '.join(services)}"
    specialties = labels(business.specialties)[:2]
    if specialties:
        text += f". They specialize in {' and '.join(specialties)}."
    else:
        text += "."
    return optimize_answer_for_voice(text)


def general_answer(page: PageData) -> str:
    business = page.business
    text = f"{business.name} is a {business.category_display.lower()} business in {_location_phrase(page)}."
    if page.update and page.update.content_text:
        text += f" Latest update: {page.update.content_text}"
    return optimize_answer_for_voice(text)


def build_voice_answers(page: PageData, now: datetime) -> VoiceAnswers:
    return VoiceAnswers(
        hours=hours_answer(page, now),
        location=location_answer(page),
        contact=contact_answer(page),
        services=services_answer(page),
        general=general_answer(page),
    )


# --- FAQs ---

def _hours_question(name: str) -> str:
    return f"What are {name}'s hours?"


def build_voice_faqs(page: PageData, now: datetime) -> list[FAQEntry]:
    """Voice FAQs in priority order, merged with author FAQs, capped at 8.

    Order: hours, location, contact, services (when services are known),
    then business and update FAQs.
    """
    business = page.business
    name = business.name
    faqs = [
        FAQEntry(
            question=_hours_question(name),
            answer=hours_answer(page, now),
            category="hours",
            voice_search_triggers=["hours", "open", "close", "what time", "when do you"],
        ),
        FAQEntry(
            question=f"Where is {name} located?",
            answer=location_answer(page),
            category="location",
            voice_search_triggers=["where", "location", "address", "find you", "near me"],
        ),
        FAQEntry(
            question=f"How do I contact {name}?",
            answer=contact_answer(page),
            category="contact",
            voice_search_triggers=["phone", "call", "contact", "reach", "number"],
        ),
    ]
    if business.services:
        faqs.append(FAQEntry(
            question=f"What services does {name} offer?",
            answer=services_answer(page),
            category="services",
            voice_search_triggers=["services", "offer", "do you have", "provide"],
        ))

    custom = list(business.business_faqs or [])
    if page.update and page.update.update_faqs:
        custom.extend(page.update.update_faqs)
    seen = {" ".join(f.question.lower().split()) for f in faqs}
    for faq in custom:
        key = " ".join(faq.question.lower().split())
        if not faq.question or not faq.answer or key in seen:
            continue
        seen.add(key)
        faqs.append(FAQEntry(
            question=faq.question,
            answer=optimize_answer_for_voice(faq.answer),
            category=faq.category or "custom",
            voice_search_triggers=list(faq.voice_search_triggers)
            or extract_keywords_from_question(faq.question),
        ))

    return faqs[:MAX_VOICE_FAQS]


def refresh_voice_faqs(page: PageData, now: datetime) -> Optional[list[FAQEntry]]:
    """Stored FAQs with the generated hours answer recomputed for `now`."""
    if not page.faqs:
        return page.faqs
    question = _hours_question(page.business.name)
    answer = hours_answer(page, now)
    return [
        replace(faq, answer=answer) if faq.category == "hours" and faq.question == question else faq
        for faq in page.faqs
    ]


def voice_triggers_for_intent(intent: str, page: PageData) -> list[str]:
    """Phrases a voice query for this intent is likely to contain."""
    business = page.business
    name = (business.name or "").lower()
    city = (business.address_city or "").lower()
    category = business.category_display.lower()

    base = [name, f"{name} {city}".strip(), category]
    by_intent = {
        Intent.DIRECT.value: [f"{name} deals", f"{name} specials", f"{name} hours", f"{name} phone"],
        Intent.LOCAL.value: [f"{category} near me", f"{category} in {city}", f"{category} open now"],
        Intent.CATEGORY.value: [f"professional {category}", f"{category} services", f"expert {category}"],
        Intent.BRANDED_LOCAL.value: [f"{name} in {city}", f"{name} {city} hours", f"{name} {city} address"],
        Intent.SERVICE_URGENT.value: [
            f"emergency {category}",
            f"urgent {category}",
            f"{category} available now",
            "available right now",
        ],
        Intent.COMPETITIVE.value: [f"{category} in {city}", f"{category} reviews", f"compare {category}"],
    }
    triggers: list[str] = []
    for phrase in base + by_intent.get(str(intent), []):
        if phrase and phrase not in triggers:
            triggers.append(phrase)
    return triggers
