from __future__ import annotations


ABSENCE_TOPIC = "abmeldung"
TUNINGCHIP_TOPIC = "tuningchip"
STANCE_TOPIC = "stance"
XENON_TOPIC = "xenon"

DOCUMENTATION_TOPICS = (TUNINGCHIP_TOPIC, STANCE_TOPIC, XENON_TOPIC)
PANEL_TOPICS = (ABSENCE_TOPIC, *DOCUMENTATION_TOPICS)


def is_documentation_topic(topic: str) -> bool:
    return topic in DOCUMENTATION_TOPICS
