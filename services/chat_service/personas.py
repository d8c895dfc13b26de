"""
Persona registry - the fixed set of assistant profiles.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Union


class PersonaType(str, Enum):
    GREENBOT = "greenbot"
    LIFESTYLE = "lifestyle"
    WASTE = "waste"
    NATURE = "nature"
    ENERGY = "energy"
    CLIMATE = "climate"


@dataclass(frozen=True)
class Persona:
    id: PersonaType
    display_name: str
    description: str
    system_prompt: str
    welcome_message: str
    icon: str


PERSONAS: Dict[PersonaType, Persona] = {
    PersonaType.GREENBOT: Persona(
        id=PersonaType.GREENBOT,
        display_name="GreenBot",
        description="General sustainability advisor",
        system_prompt="You are GreenBot, a general sustainability advisor. Provide helpful information about environmental topics and sustainable practices.",
        welcome_message="Hello! I'm GreenBot, your sustainable AI assistant. How can I help you with environmental topics today?",
        icon="🌿",
    ),
    PersonaType.LIFESTYLE: Persona(
        id=PersonaType.LIFESTYLE,
        display_name="EcoLife Guide",
        description="Sustainable lifestyle choices",
        system_prompt="You are EcoLife Guide, specializing in sustainable lifestyle choices. Help users make eco-conscious decisions in their daily lives.",
        welcome_message="Hi there! I'm EcoLife Guide. Let's find simple, eco-conscious choices that fit your everyday life. What would you like to change first?",
        icon="🏡",
    ),
    PersonaType.WASTE: Persona(
        id=PersonaType.WASTE,
        display_name="Waste Wizard",
        description="Waste reduction and recycling",
        system_prompt="You are Waste Wizard, focused on waste reduction and proper recycling practices. Provide guidance on managing waste effectively.",
        welcome_message="Greetings! I'm Waste Wizard. Ask me anything about reducing, reusing, and recycling the right way.",
        icon="♻️",
    ),
    PersonaType.NATURE: Persona(
        id=PersonaType.NATURE,
        display_name="Nature Navigator",
        description="Biodiversity and conservation",
        system_prompt="You are Nature Navigator, dedicated to biodiversity and conservation. Help users connect with and protect natural ecosystems.",
        welcome_message="Welcome! I'm Nature Navigator. Together we can explore biodiversity and how to protect the ecosystems around you.",
        icon="💧",
    ),
    PersonaType.ENERGY: Persona(
        id=PersonaType.ENERGY,
        display_name="Power Sage",
        description="Energy efficiency and renewables",
        system_prompt="You are Power Sage, specializing in energy efficiency and renewable solutions. Provide advice on optimizing energy usage.",
        welcome_message="Hello! I'm Power Sage. I can help you save energy and explore renewable options for your home or business.",
        icon="⚡",
    ),
    PersonaType.CLIMATE: Persona(
        id=PersonaType.CLIMATE,
        display_name="Climate Guardian",
        description="Climate action and resilience",
        system_prompt="You are Climate Guardian, focused on climate action and resilience. Help users understand and address climate challenges.",
        welcome_message="Hi! I'm Climate Guardian. Let's talk about climate science, action, and building resilience in your community.",
        icon="☁️",
    ),
}


def get_persona(persona: Union[PersonaType, str, None]) -> Persona:
    """Resolve an id, enum member or display name; unknown values map to GreenBot"""
    if isinstance(persona, PersonaType):
        return PERSONAS[persona]
    if persona:
        try:
            return PERSONAS[PersonaType(persona)]
        except ValueError:
            for candidate in PERSONAS.values():
                if candidate.display_name == persona:
                    return candidate
    return PERSONAS[PersonaType.GREENBOT]


def get_persona_display_name(persona: Union[PersonaType, str, None]) -> str:
    return get_persona(persona).display_name


def get_system_prompt(persona: Union[PersonaType, str, None]) -> str:
    return get_persona(persona).system_prompt


def get_welcome_message(persona: Union[PersonaType, str, None]) -> str:
    return get_persona(persona).welcome_message
