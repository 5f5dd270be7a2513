from cv_analysis.analyzer import analysis_messages, heuristic_analysis, parse_analysis
from cv_analysis.extractor import clean_text, completeness_score, validate_content

import pytest

SAMPLE_CV = """
CURRICULUM VITAE

Name: Juan Perez
Email: juan.perez@example.com
Phone: +34 600 123 456

WORK EXPERIENCE
2020-2023: Backend developer at TechCorp
- Python and JavaScript programming
- Teamwork with product designers

EDUCATION
2016-2020: Computer Engineering degree - National University

SKILLS
- Python, React, SQL
- Communication and problem solving
"""


def test_clean_text_strips_noise():
    raw = "Name:\tJuan   Perez\x00\r\n--\n\n  Skills:  Python  \n"
    assert clean_text(raw) == "Name: Juan Perez\nSkills: Python"


def test_complete_cv_validates():
    validation = validate_content(clean_text(SAMPLE_CV))
    assert validation.is_valid is True
    assert validation.score == 100
    assert all(validation.fields.values())
    assert validation.warnings == []


def test_short_text_is_penalised_and_invalid():
    validation = validate_content("Skills: Python")
    assert validation.fields["has_skills"] is True
    assert validation.score == 0
    assert validation.is_valid is False
    assert validation.warnings[0] == "The CV does not contain the minimum required sections"
    assert any("very short" in warning for warning in validation.warnings)


def test_completeness_weights():
    assert completeness_score({}).score == 0
    partial = completeness_score({"has_name": True, "has_experience": True})
    assert partial.score == 45
    assert [item.points for item in partial.breakdown] == [20, 0, 25, 0, 0]
    assert completeness_score({field: True for field in ("has_name", "has_contact", "has_experience", "has_education", "has_skills")}).score == 100


def test_analysis_prompt_truncates_text():
    messages = analysis_messages("x" * 5000, "Juan", prompt_chars=100)
    assert messages[0]["role"] == "system"
    assert "of Juan" in messages[1]["content"]
    assert messages[1]["content"].endswith("x" * 100)
    assert "x" * 101 not in messages[1]["content"]


def test_parse_analysis_rejects_empty_payloads():
    with pytest.raises(ValueError):
        parse_analysis('{"strengths": [], "technical_skills": []}')
    with pytest.raises(ValueError):
        parse_analysis("not json")
    assert parse_analysis('```json\n{"technical_skills": ["Go"]}\n```').technical_skills == ["Go"]


def test_keyword_fallback_analysis():
    text = clean_text(SAMPLE_CV)
    analysis = heuristic_analysis(text, validate_content(text))

    assert "Python" in analysis.technical_skills
    assert "Java" not in analysis.technical_skills
    assert "JavaScript" in analysis.technical_skills
    assert {"Teamwork", "Communication", "Problem solving"} <= set(analysis.soft_skills)
    assert analysis.strengths
    assert analysis.improvement_areas == ["Quantify achievements with concrete results"]
    assert "Backend developer" in analysis.experience_summary
    assert "University" in analysis.education_summary
