"""
Built-in quiz questions, one quiz per persona.
"""

from dataclasses import dataclass
from typing import Dict, List

from services.chat_service.personas import PersonaType


@dataclass(frozen=True)
class QuizQuestion:
    id: str
    question: str
    options: List[str]
    correct_answer_index: int
    explanation: str


@dataclass(frozen=True)
class Quiz:
    title: str
    description: str
    questions: List[QuizQuestion]


QUIZZES: Dict[PersonaType, Quiz] = {
    PersonaType.GREENBOT: Quiz(
        title="General Sustainability Quiz",
        description="Test your knowledge about general sustainability concepts and practices.",
        questions=[
            QuizQuestion(
                id="gs-1",
                question="What does the term 'carbon footprint' refer to?",
                options=[
                    "The mark left by carbon paper",
                    "The total amount of greenhouse gases produced by human activities",
                    "A measurement of carbon in soil",
                    "A footprint fossil containing carbon",
                ],
                correct_answer_index=1,
                explanation="A carbon footprint is the total amount of greenhouse gases (including carbon dioxide and methane) that are generated by our actions.",
            ),
            QuizQuestion(
                id="gs-2",
                question="Which of the following is a renewable energy source?",
                options=["Natural gas", "Coal", "Solar power", "Petroleum"],
                correct_answer_index=2,
                explanation="Solar power is renewable because it comes from the sun, which is a virtually inexhaustible source of energy.",
            ),
            QuizQuestion(
                id="gs-3",
                question="What is greenwashing?",
                options=[
                    "Cleaning with environmentally friendly products",
                    "Marketing that falsely portrays a company's products as environmentally friendly",
                    "A technique for washing vegetables",
                    "Using green dye to color products",
                ],
                correct_answer_index=1,
                explanation="Greenwashing is marketing that makes products or companies seem more environmentally friendly than they really are.",
            ),
        ],
    ),
    PersonaType.LIFESTYLE: Quiz(
        title="Eco-Lifestyle Quiz",
        description="Test your knowledge about sustainable living and eco-friendly lifestyle choices.",
        questions=[
            QuizQuestion(
                id="el-1",
                question="Which of these has the lowest environmental impact for daily commuting?",
                options=["Driving alone in an SUV", "Carpooling", "Cycling or walking", "Taking a taxi"],
                correct_answer_index=2,
                explanation="Cycling and walking have virtually zero emissions and are the most environmentally friendly transportation methods.",
            ),
            QuizQuestion(
                id="el-2",
                question="What is a 'zero waste' lifestyle?",
                options=[
                    "Living without producing any trash that goes to landfill",
                    "Only producing waste that can be recycled",
                    "Offsetting your waste by planting trees",
                    "Living without food waste",
                ],
                correct_answer_index=0,
                explanation="Zero waste means adopting lifestyle practices that avoid sending any trash to landfills, incinerators, or the ocean.",
            ),
            QuizQuestion(
                id="el-3",
                question="Which of these foods typically has the highest carbon footprint?",
                options=["Locally grown vegetables", "Beef", "Chicken", "Legumes (beans, lentils)"],
                correct_answer_index=1,
                explanation="Beef production typically has the highest carbon footprint due to methane emissions from cattle and deforestation for grazing land.",
            ),
        ],
    ),
    PersonaType.WASTE: Quiz(
        title="Waste Management Quiz",
        description="Test your knowledge about waste reduction and recycling.",
        questions=[
            QuizQuestion(
                id="wm-1",
                question="Which of these items should NOT go in the recycling bin?",
                options=["Paper", "Aluminum cans", "Greasy pizza boxes", "Plastic water bottles"],
                correct_answer_index=2,
                explanation="Greasy pizza boxes are contaminated with food waste, which can contaminate entire batches of recyclables. They should be composted or thrown away.",
            ),
            QuizQuestion(
                id="wm-2",
                question="What does the waste hierarchy prioritize first?",
                options=["Recycling", "Prevention/Reduction", "Energy recovery", "Composting"],
                correct_answer_index=1,
                explanation="The waste hierarchy prioritizes prevention and reduction first, followed by reuse, recycling, energy recovery, and disposal as a last resort.",
            ),
            QuizQuestion(
                id="wm-3",
                question="What is 'wishcycling'?",
                options=[
                    "Hoping your recycling gets recycled",
                    "Putting items in recycling bins that aren't actually recyclable",
                    "Wishing for better recycling systems",
                    "Recycling birthday wishes",
                ],
                correct_answer_index=1,
                explanation="Wishcycling is the practice of putting items in recycling bins hoping they'll be recycled, even when they're not actually recyclable locally.",
            ),
        ],
    ),
    PersonaType.NATURE: Quiz(
        title="Biodiversity Quiz",
        description="Test your knowledge about biodiversity and conservation.",
        questions=[
            QuizQuestion(
                id="bd-1",
                question="What is biodiversity?",
                options=[
                    "The study of human life",
                    "The variety of living organisms in a specific habitat or ecosystem",
                    "The diversity of biological research methods",
                    "A type of sustainable farming",
                ],
                correct_answer_index=1,
                explanation="Biodiversity refers to the variety of living species within a given area, including plants, animals, fungi, and microorganisms, as well as the ecosystems they form.",
            ),
            QuizQuestion(
                id="bd-2",
                question="Which of the following is considered a biodiversity hotspot?",
                options=["Antarctica", "Urban areas", "The Amazon Rainforest", "The open ocean"],
                correct_answer_index=2,
                explanation="The Amazon Rainforest is one of the world's biodiversity hotspots, harboring the largest collection of living plant and animal species on Earth.",
            ),
            QuizQuestion(
                id="bd-3",
                question="What is the primary cause of biodiversity loss globally?",
                options=["Natural disasters", "Habitat destruction and fragmentation", "Old age of species", "Solar flares"],
                correct_answer_index=1,
                explanation="Habitat destruction and fragmentation, primarily due to human activities like deforestation and urban development, is the leading cause of biodiversity loss worldwide.",
            ),
        ],
    ),
    PersonaType.ENERGY: Quiz(
        title="Energy Efficiency Quiz",
        description="Test your knowledge about energy efficiency and renewable energy.",
        questions=[
            QuizQuestion(
                id="ee-1",
                question="Which of these is a renewable energy source?",
                options=["Natural gas", "Coal", "Wind power", "Petroleum"],
                correct_answer_index=2,
                explanation="Wind power is a renewable energy source because it harnesses naturally replenishing wind energy and doesn't deplete finite resources.",
            ),
            QuizQuestion(
                id="ee-2",
                question="What does 'energy efficiency' mean?",
                options=[
                    "Using more energy to accomplish tasks",
                    "Using less energy to provide the same service or output",
                    "Turning off all electronic devices",
                    "The total amount of energy produced",
                ],
                correct_answer_index=1,
                explanation="Energy efficiency means using less energy to perform the same task or provide the same service, thereby reducing energy waste.",
            ),
            QuizQuestion(
                id="ee-3",
                question="Which household appliance typically uses the most energy?",
                options=["Refrigerator", "Toaster", "LED light bulb", "Smartphone charger"],
                correct_answer_index=0,
                explanation="Refrigerators typically use the most energy among common household appliances because they run continuously, though newer models are much more efficient than older ones.",
            ),
        ],
    ),
    PersonaType.CLIMATE: Quiz(
        title="Climate Action Quiz",
        description="Test your knowledge about climate change and climate action.",
        questions=[
            QuizQuestion(
                id="ca-1",
                question="What is the primary greenhouse gas responsible for human-caused climate change?",
                options=["Oxygen", "Nitrogen", "Carbon dioxide", "Hydrogen"],
                correct_answer_index=2,
                explanation="Carbon dioxide (CO2) is the primary greenhouse gas contributing to human-caused climate change, largely due to fossil fuel burning and deforestation.",
            ),
            QuizQuestion(
                id="ca-2",
                question="What is meant by the term 'carbon neutral'?",
                options=[
                    "Having no carbon in a substance",
                    "Achieving net-zero carbon emissions by balancing emissions with removal or offsets",
                    "Only using carbon-free materials",
                    "Having a neutral opinion about carbon policy",
                ],
                correct_answer_index=1,
                explanation="Carbon neutral means achieving net-zero carbon emissions by balancing the amount of carbon released with an equivalent amount sequestered, offset, or eliminated.",
            ),
            QuizQuestion(
                id="ca-3",
                question="Which of these sectors typically produces the most greenhouse gas emissions globally?",
                options=["Energy production and use", "Agriculture", "Waste management", "Tourism"],
                correct_answer_index=0,
                explanation="Energy production and use (including electricity, heating, and transportation) typically accounts for about two-thirds of global greenhouse gas emissions.",
            ),
        ],
    ),
}
