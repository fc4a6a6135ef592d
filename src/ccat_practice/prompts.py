"""Prompt text sent to the content generator."""
import json

from ccat_practice.models import Category, Difficulty, Question, UserAnswer

QUESTIONS_PER_BATCH = 90

# Skill tags the generator may assign per category; also drives the progress table.
CATEGORY_SKILLS = {
    Category.VERBAL: ["analogy", "sentence completion", "classification", "synonym/antonym"],
    Category.QUANTITATIVE: ["number pattern", "word problem", "basic arithmetic"],
    Category.NON_VERBAL: ["pattern completion", "figure matrix", "spatial reasoning"],
}

DIFFICULTY_GUIDANCE = {
    Difficulty.EASY: "use foundational concepts",
    Difficulty.MEDIUM: "use standard, on-level concepts",
    Difficulty.HARD: "use challenging concepts that require deeper thinking or combining multiple skills",
}

NON_VERBAL_RULES = """
Rules for non-verbal options:
1. Give exactly 4 options, each a plain text description of one or more shapes.
2. Options must look different from each other. Never list two options that draw
   the same picture, like 'A blue circle' and 'One blue circle'.
3. Describe shapes with this vocabulary only:
   - Quantity: 'One', 'Two', 'Three', 'Four'
   - Size (optional): 'small', 'big'
   - State (optional): 'filled', 'empty'
   - Color: 'red', 'blue', 'green', 'yellow'
   - Shape: 'square', 'circle', 'triangle', 'star'
   For example 'One small filled red square' or 'Two big empty blue circles'.
4. Exactly one option is logically correct and correct_index points to it.
5. Set is_image_based to true."""


def get_grade_text(grade: int) -> str:
    """Ordinal form of a grade, e.g. 1st, 2nd, 11th."""
    if 11 <= grade % 100 <= 13:
        return f"{grade}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(grade % 10, "th")
    return f"{grade}{suffix}"


def build_question_prompt(category: Category, difficulty: Difficulty, grade: int) -> str:
    grade_text = get_grade_text(grade)
    skills = ", ".join(f"'{s}'" for s in CATEGORY_SKILLS[category])
    prompt = (
        f"Generate {QUESTIONS_PER_BATCH} questions suitable for a {grade_text}-grade student "
        "for a CCAT practice test. Provide 4 multiple choice options. The correct answer "
        "must be one of the options. For each question, give a brief, simple explanation "
        f"for a {grade_text} grader of why the correct answer is correct, and a "
        "'sub_category' string from the allowed list.\n\n"
        f"Category: {category.value.upper()}\n"
        f"Allowed sub_category values: {skills}.\n\n"
        f"Difficulty: {difficulty.value.upper()}\n"
        f"Adjust the complexity for a typical {grade_text}-grade student: "
        f"{DIFFICULTY_GUIDANCE[difficulty]}.\n\n"
        "Return a JSON array of objects with the keys 'question', 'options', "
        "'is_image_based', 'correct_index' (0-based), 'explanation' and 'sub_category'."
    )
    if category is Category.NON_VERBAL:
        prompt += "\n" + NON_VERBAL_RULES
    return prompt


def build_creative_prompt(grade: int) -> str:
    return (
        "Generate one short, simple, creative, open-ended question appropriate for a "
        f"{get_grade_text(grade)} grader. It should be a single sentence that invites a "
        "single sentence answer. Examples: \"If clouds had flavors, what would a puffy "
        "white cloud taste like?\" or \"What sound would a star make if you could hear it?\""
    )


def build_feedback_prompt(prompt: str, answer: str, grade: int) -> str:
    return (
        f"A {get_grade_text(grade)} grader was given the prompt: \"{prompt}\". "
        f"They answered: \"{answer}\". Act as a friendly, encouraging teacher. Give one "
        "or two sentences of positive and constructive feedback. Focus on creativity "
        "and effort, not grammar. Do not give a score."
    )


def build_tutor_instruction(question: Question, user_answer: UserAnswer, grade: int) -> str:
    chosen = question.options[user_answer.chosen_index]
    return (
        f"You are Sparky, a friendly and patient tutor helping a {get_grade_text(grade)} "
        "student understand a question they got wrong.\n"
        f"Question: {question.text}\n"
        f"Options: {', '.join(question.options)}\n"
        f"The student chose: {chosen}\n"
        f"The correct answer is: {question.correct_option}\n"
        f"Explanation: {question.explanation}\n"
        "Guide them with hints and short questions instead of repeating the answer. "
        "Keep replies to two or three short sentences."
    )


def build_summary_prompt(performance: dict, grade: int) -> str:
    stats = {skill: {"correct": s.correct, "total": s.total} for skill, s in performance.items()}
    return (
        "You are Sparky, a learning coach in a CCAT practice app. Here is a student's "
        f"performance per skill: {json.dumps(stats, sort_keys=True)}. Write a short, "
        "encouraging summary (2-3 sentences). Point out one strength (a skill with high "
        "accuracy) and suggest one skill to practice next (a skill with lower accuracy). "
        f"The student is in {get_grade_text(grade)} grade. Keep the tone positive."
    )
