from __future__ import annotations  # Prompt construction for the interviewer persona and evaluator

import random
from textwrap import dedent
from typing import Dict, List, Optional, Sequence

from .models import CONVERSATION_ROLES, Difficulty, SubjectArea, Turn

ChatMessage = Dict[str, str]

DIFFICULTY_GUIDANCE: Dict[Difficulty, str] = {
    Difficulty.BASIC: "basic level, focusing on fundamental and motivational questions",
    Difficulty.INTERMEDIATE: "intermediate level, with moderate technical and situational questions",
    Difficulty.ADVANCED: (
        "advanced level, with deep technical questions, complex scenarios and an assessment of leadership"
    ),
}

DEFAULT_COMPETENCIES = ("General technical skills", "Soft skills", "Adaptability")

EVALUATOR_SYSTEM_PROMPT = "You are an expert interview evaluator. Reply ONLY with valid JSON."

EVALUATION_TEMPLATE = dedent(
    """
    {
      "score": 8.5,
      "performance_level": "Very Good",
      "strengths": [
        "Clear and well structured communication",
        "Solid technical knowledge in X",
        "Good examples from past experience"
      ],
      "improvement_areas": [
        "Go deeper into Y",
        "Work on initial nervousness"
      ],
      "detailed_scores": {
        "communication": 9,
        "technical_knowledge": 8,
        "relevant_experience": 7,
        "professional_attitude": 9,
        "adaptability": 8
      },
      "hire_recommendation": "Recommended with minor reservations",
      "final_comment": "The candidate shows ... [professional comment]",
      "suggested_next_steps": [
        "Consider for a second technical interview",
        "Request work references"
      ]
    }
    """
).strip()

FALLBACK_REPLIES = (
    "Thank you for your answer. Could you tell me more about your experience in this field?",
    "That's interesting. Can you give me a concrete example of a situation where that happened?",
    "I appreciate the detail. What was the most difficult part of that experience for you?",
    "Thanks for sharing. How did you measure whether the result was a success?",
    "Understood. What would you do differently if you faced the same situation today?",
    "Good. How do you usually work with your team when priorities change suddenly?",
)


def competencies(subject: SubjectArea) -> List[str]:
    return list(subject.competencies) or list(DEFAULT_COMPETENCIES)


def system_prompt(subject: SubjectArea, difficulty: Difficulty) -> str:
    """Interviewer persona instructions, rebuilt for every call and never stored."""

    competency_lines = "\n".join(f"- {item}" for item in competencies(subject))
    return dedent(
        f"""
        You are a professional human-resources recruiter specialised in the {subject.name} track.

        YOUR ROLE:
        - You are friendly but professional
        - You ask ONE question at a time and wait for the candidate's answer
        - You assess the candidate's answers in the context of {subject.name}
        - You adapt your questions to the previous answers
        - You give constructive feedback when appropriate

        DIFFICULTY LEVEL: {difficulty.value} - {DIFFICULTY_GUIDANCE[difficulty]}

        KEY COMPETENCIES TO ASSESS:
        {{competencies}}

        INTERVIEW STRUCTURE:
        1. Professional greeting and short introduction
        2. Questions about experience and motivation
        3. Technical questions specific to {subject.area}
        4. Situational and behavioural questions
        5. Closing and room for the candidate's questions

        IMPORTANT:
        - Do NOT ask several questions at once
        - Listen carefully to every answer before moving on
        - Be empathetic while staying professional

        RESPONSE FORMAT:
        - Reply naturally and conversationally
        - Use short paragraphs
        - Do not use JSON unless explicitly asked
        """
    ).strip().replace("{competencies}", competency_lines)


def history_messages(history: Sequence[Turn]) -> List[ChatMessage]:
    """Map stored turns 1:1 to chat messages, dropping anything that is not user or assistant."""

    return [{"role": turn.role, "content": turn.content} for turn in history if turn.role in CONVERSATION_ROLES]


def conversation_messages(
    subject: SubjectArea,
    difficulty: Difficulty,
    history: Sequence[Turn],
    new_user_text: Optional[str] = None,
) -> List[ChatMessage]:
    messages: List[ChatMessage] = [{"role": "system", "content": system_prompt(subject, difficulty)}]
    messages.extend(history_messages(history))
    if new_user_text is not None:
        messages.append({"role": "user", "content": new_user_text})
    return messages


def opening_messages(subject: SubjectArea, difficulty: Difficulty, candidate_name: str) -> List[ChatMessage]:
    greeting = f"Hello, I'm {candidate_name}. I'm ready to start the interview."
    return conversation_messages(subject, difficulty, [], greeting)


def format_transcript(history: Sequence[Turn]) -> str:
    lines = []
    for index, message in enumerate(history_messages(history), start=1):
        speaker = "INTERVIEWER" if message["role"] == "assistant" else "CANDIDATE"
        lines.append(f"{index}. {speaker}: {message['content']}")
    return "\n\n".join(lines)


def evaluation_messages(subject: SubjectArea, difficulty: Difficulty, history: Sequence[Turn]) -> List[ChatMessage]:
    """Single-shot evaluation request with the transcript embedded as text."""

    request = (
        "As a professional recruiter, analyse this complete interview and produce a detailed evaluation in JSON.\n\n"
        f"TRACK: {subject.name}\n"
        f"DIFFICULTY: {difficulty.value}\n\n"
        "INTERVIEW TRANSCRIPT:\n"
        f"{format_transcript(history)}\n\n"
        "PRODUCE A JSON OBJECT WITH EXACTLY THIS STRUCTURE:\n"
        f"{EVALUATION_TEMPLATE}\n\n"
        "Scores go from 0 to 10. Reply ONLY with the valid JSON object, with no extra text."
    )
    return [
        {"role": "system", "content": EVALUATOR_SYSTEM_PROMPT},
        {"role": "user", "content": request},
    ]


def fallback_opening(candidate_name: str, subject: SubjectArea) -> str:
    return (
        f"Hello {candidate_name}, welcome! I'm your virtual interviewer. Let's begin with a question: "
        f"what motivated you to apply for this position in {subject.name}?"
    )


def fallback_reply(rng: random.Random, previous: Optional[str] = None) -> str:
    """Pick a canned follow-up, avoiding an immediate repeat of the last assistant line."""

    choices = [reply for reply in FALLBACK_REPLIES if reply != previous] or list(FALLBACK_REPLIES)
    return rng.choice(choices)


__all__ = [
    "ChatMessage",
    "DIFFICULTY_GUIDANCE",
    "EVALUATION_TEMPLATE",
    "FALLBACK_REPLIES",
    "competencies",
    "conversation_messages",
    "evaluation_messages",
    "fallback_opening",
    "fallback_reply",
    "format_transcript",
    "history_messages",
    "opening_messages",
    "system_prompt",
]
