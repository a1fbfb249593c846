"""
Prompt templates and the JSON shapes the LLM must answer with.

Every prompt ends with an explicit JSON example; the client knows how to
read each of these shapes (see api.py).
"""

TRANSLATION_FROM_GERMAN = (
    'Respond only with a JSON following format: '
    '{{"trans":"translation from German to English of \'{phrase}\' here", '
    '"etym":"etymology of the german phrase here given in English", '
    '"synonyms":"2-3 German synonyms for \'{phrase}\' separated by commas"}}.'
)

TRANSLATION_FROM_ENGLISH = (
    'Respond only with a JSON following format: '
    '{{"trans":"translation from English to German of \'{phrase}\' here", '
    '"etym":"etymology of the german phrase here given in English", '
    '"synonyms":"2-3 German synonyms for the translated word separated by commas"}}.'
)


EXERCISE_INSTRUCTIONS = {
    "fill_blank": """
- Create sentences with blanks for articles (der/die/das), cases (accusative/dative/genitive), or verb forms
- Format: "Ich gehe in ___ Park" with correct answer "den" (accusative)
- Options should include der, die, das, den, dem, des as appropriate
""",
    "sentence_building": """
- Provide scrambled German words that form a correct sentence
- Format question as: "Build a sentence: [word1, word2, word3, word4]"
- Correct answer should be the properly ordered sentence
- No options needed (options can be empty array)
""",
    "case_selection": """
- Focus on correct case usage (Nominativ, Akkusativ, Dativ, Genitiv)
- Format: "Complete: Ich sehe ___ Mann" with options and correct case
- Options should include different case forms of the same article/adjective
""",
    "verb_conjugation": """
- Present verb infinitives and ask for correct conjugation
- Format: "Conjugate 'sein' for 'wir': wir ___" with correct answer "sind"
- Include common verb forms and tenses
""",
}

GENERIC_EXERCISE_INSTRUCTIONS = "Create general grammar exercises"

GRAMMAR_EXERCISES_PROMPT = """
Create {count} German grammar exercises using these vocabulary words when possible: {words}.
Exercise type: {exercise_type}

{instructions}

Respond only with JSON in this exact format: {{"exercises": [{{"type": "{exercise_type}", "question": "question here", "correct_answer": "answer", "options": ["option1", "option2", "correct_answer", "option3"], "explanation": "brief explanation of the grammar rule", "difficulty": "beginner", "used_words": ["word1", "word2"]}}]}}

Rules:
- Each exercise must include a clear question
- Correct answer must be precise and unambiguous
- Include 3-4 options for multiple choice (except sentence_building which can have empty options)
- Explanation should be 1-2 sentences explaining the grammar rule
- Difficulty should be "beginner", "intermediate", or "advanced"
- used_words should list vocabulary words that appear in the exercise
- Make exercises progressively more challenging
- Ensure grammatical accuracy
"""


READING_PASSAGE_PROMPT = """
Write a short German reading passage (120-200 words) for a language learner.
Use as many of these vocabulary words as possible, in natural context: {words}.
{custom_instructions}
Then write {question_count} multiple-choice comprehension questions in English about the passage.

Respond only with JSON in this exact format: {{"title": "German title", "content": "the passage text", "questions": [{{"question": "question here", "options": ["option1", "option2", "option3", "option4"], "correct_answer": 0}}]}}

Rules:
- The passage must be grammatically correct, everyday German
- Each question has exactly 4 options
- correct_answer is the 0-based index of the correct option
- Questions must be answerable from the passage alone
"""

CUSTOM_INSTRUCTIONS_PREFIX = "Additional instructions from the learner: "

DEFAULT_QUESTION_COUNT = 4


def translation_prompt(phrase: str, is_german: bool) -> str:
    template = TRANSLATION_FROM_GERMAN if is_german else TRANSLATION_FROM_ENGLISH
    return template.format(phrase=phrase)


def grammar_prompt(words, exercise_type: str, count: int) -> str:
    return GRAMMAR_EXERCISES_PROMPT.format(
        count=count,
        words=", ".join(words),
        exercise_type=exercise_type,
        instructions=EXERCISE_INSTRUCTIONS.get(exercise_type, GENERIC_EXERCISE_INSTRUCTIONS).strip(),
    )


def reading_prompt(words, custom_instructions: str = "", question_count: int = DEFAULT_QUESTION_COUNT) -> str:
    custom = custom_instructions.strip()
    return READING_PASSAGE_PROMPT.format(
        words=", ".join(words),
        custom_instructions=f"{CUSTOM_INSTRUCTIONS_PREFIX}{custom}\n" if custom else "",
        question_count=question_count,
    )
