"""Default question bank served for every scheduled exam."""
from typing import List

from ..proctoring.types import Question

SAMPLE_QUESTIONS: List[Question] = [
    Question("q1", "What is the capital of France?", ("Berlin", "Madrid", "Paris", "Rome"), "Paris"),
    Question("q2", "Which planet is known as the Red Planet?", ("Earth", "Mars", "Jupiter", "Saturn"), "Mars",
             image="https://picsum.photos/400/200?random=1"),
    Question("q3", "What is the largest ocean on Earth?",
             ("Atlantic Ocean", "Indian Ocean", "Arctic Ocean", "Pacific Ocean"), "Pacific Ocean"),
    Question("q4", 'Who wrote "Hamlet"?',
             ("Charles Dickens", "William Shakespeare", "Leo Tolstoy", "Mark Twain"), "William Shakespeare"),
    Question("q5", "What is the chemical symbol for water?", ("O2", "H2O", "CO2", "NaCl"), "H2O",
             image="https://picsum.photos/400/200?random=2"),
    Question("q6", "What is 2 + 2?", ("3", "4", "5", "6"), "4"),
    Question("q7", "Which of these is a primary color?", ("Green", "Orange", "Blue", "Purple"), "Blue"),
    Question("q8", "How many continents are there?", ("5", "6", "7", "8"), "7"),
    Question("q9", "What is the currency of Japan?", ("Won", "Yuan", "Yen", "Dollar"), "Yen"),
    Question("q10", "In which year did World War II end?", ("1942", "1945", "1948", "1950"), "1945"),
]


def get_exam_questions(exam_id: int) -> List[Question]:
    return list(SAMPLE_QUESTIONS)
