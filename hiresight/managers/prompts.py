from ..application.interview_session import Question

QUESTION_PROMPT = """Based on this resume and job description, generate {count} highly relevant interview questions.
Mix of behavioral and technical questions suitable for the role.
Give every question a short unique id and one category: behavioral, technical, situational or intro.
Resume: {resume}
Job Description: {job_description}"""

BEHAVIORAL_INSTRUCTIONS = """
Assess using 1-5 scales:
1. Structural Criteria (STAR+R Method): Did they provide Situation, Task, Action, Result (quantified), and Reflection?
2. Content & Competency Alignment: Relevance to job, problem-solving, communication quality.
3. Behavioral & Engagement Cues: Listening, confidence, energy, self-awareness.
Check for Red Flags: Vague "Story-Only" answers (no metrics), Blame-Shifting, Inconsistency with resume, Defensiveness.
"""

TECHNICAL_INSTRUCTIONS = """
Assess using 1-5 scales:
1. Meta-Reasoning & "Thinking Out Loud": Clarification questions, externalizing thought process, self-correction.
2. Implementation Quality: Readability, abstractions (DRY), Big O optimization.
3. Trade-off Fluency & System Awareness: Resource management, alternative solutions, failure modes.
4. Testing & Edge Case Awareness: Adversarial thinking, validation for nulls/boundaries, systematic debugging.
5. Technical Communication & Collaboration: Explaining complex concepts simply, feedback integration, AI literacy (if applicable).
"""

ANALYSIS_PROMPT = """Analyze this interview response.
Question Type: {category}
Question asked: "{question}"

Evaluation Standards:
{instructions}

Instructions:
- Provide a score (1-5) and specific feedback for each dimension listed above.
- Extract any Red Flags.
- Analyze body language from the provided frames."""

QUESTIONS_SCHEMA = {
    "type": "object",
    "properties": {
        "questions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "text": {"type": "string"},
                    "category": {
                        "type": "string",
                        "enum": ["behavioral", "technical", "situational", "intro"],
                    },
                },
                "required": ["id", "text", "category"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["questions"],
    "additionalProperties": False,
}

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "dimensions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "label": {"type": "string"},
                    "score": {"type": "number", "description": "1 to 5 score"},
                    "feedback": {"type": "string"},
                },
                "required": ["label", "score", "feedback"],
                "additionalProperties": False,
            },
        },
        "body_language_notes": {"type": "string"},
        "key_strengths": _STRING_LIST,
        "areas_of_improvement": _STRING_LIST,
        "red_flags": {
            **_STRING_LIST,
            "description": "Specific warnings based on the red flag criteria provided",
        },
        "overall_feedback": {"type": "string"},
        "overall_score": {"type": "number", "description": "1 to 5 overall score"},
    },
    "required": [
        "dimensions",
        "body_language_notes",
        "key_strengths",
        "areas_of_improvement",
        "red_flags",
        "overall_feedback",
        "overall_score",
    ],
    "additionalProperties": False,
}


def question_prompt(resume: str, job_description: str, count: int) -> str:
    return QUESTION_PROMPT.format(count=count, resume=resume, job_description=job_description)


def analysis_prompt(question: Question) -> str:
    instructions = TECHNICAL_INSTRUCTIONS if question.is_technical else BEHAVIORAL_INSTRUCTIONS
    return ANALYSIS_PROMPT.format(
        category=question.category.value.upper(),
        question=question.text,
        instructions=instructions.strip(),
    )
