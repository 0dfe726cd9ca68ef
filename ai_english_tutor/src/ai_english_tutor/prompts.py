"""
Prompt templates for every LLM task in the tutor.
"""

from typing import Optional


JSON_TUTOR_SYSTEM_PROMPT = (
    "You are an expert English tutor API. You must strictly output valid JSON only. "
    "No markdown formatting, no conversational text."
)

CHAT_SYSTEM_PROMPT = (
    "You are a helpful AI Living Tutor for students. You can ONLY discuss topics related to "
    "elementary, middle, and high school education (subjects, study tips, homework help, school life). "
    "If the user asks about anything else, politely decline and steer the conversation back to education."
)

LESSON_TOPICS = [
    "The Future of Artificial Intelligence",
    "Sustainable Living and Minimalist Lifestyles",
    "The History of Coffee Culture",
    "Space Exploration: Mars and Beyond",
    "The Psychology of Happiness",
    "Remote Work: Benefits and Challenges",
    "The Impact of Social Media on Communication",
    "Underwater Ecosystems and Coral Reefs",
    "Traditional vs Modern Education Systems",
    "The Rise of Electric Vehicles",
]


def lesson_prompt(level: str, topic: str, article_id: str) -> str:
    return f"""
Create an English reading lesson for {level} level students.
Topic: {topic}.
Ensure the article is unique and creative. Do not repeat previous content.

Output strictly valid JSON with this structure:
{{
  "article": {{
    "id": "{article_id}",
    "title": "String",
    "readTime": "String (e.g. 5 MIN READ)",
    "content": ["Paragraph 1", "Paragraph 2", "Paragraph 3"],
    "type": "article"
  }},
  "questions": [
    {{
      "id": 1,
      "text": "Question text?",
      "correctId": 2,
      "explanation": "Why the answer is correct",
      "options": [
        {{"id": 1, "label": "A", "text": "Option 1"}},
        {{"id": 2, "label": "B", "text": "Option 2"}},
        {{"id": 3, "label": "C", "text": "Option 3"}},
        {{"id": 4, "label": "D", "text": "Option 4"}}
      ]
    }}
  ]
}}
"""


def recommendations_prompt(level: str) -> str:
    return f"""
Generate 5 recommended English reading content items for a {level} student.
Mix of 'News' and 'Blog'.

Output strictly valid JSON array of objects:
[
  {{
    "id": "String",
    "title": "String",
    "level": "String (e.g. B2 Intermediate)",
    "time": "String (e.g. 5 MIN READ)",
    "snippet": "Short description",
    "type": "News"
  }}
]
"""


# Writing coach phases

STYLE_SYSTEM_PROMPT = "You are an expert writing style analyst. Provide clear, structured analysis."

EVALUATION_SYSTEM_PROMPT = "You are a professional writing evaluator. Be specific with examples."

IMPROVEMENT_SYSTEM_PROMPT = "You are an encouraging writing coach. Provide specific, actionable suggestions."

REFINEMENT_SYSTEM_PROMPT = (
    "You are an expert editor. Maintain original voice while improving clarity, grammar, and flow."
)

FOLLOWUP_SYSTEM_PROMPT = (
    "You are a thoughtful teacher. Generate personalized follow-up questions to deepen student understanding."
)


def style_prompt(sample: str) -> str:
    return f"""Analyze this writing sample for style, topic, tone, and genre:

WRITING SAMPLE:
---
{sample}
---

Provide response in TWO PARTS:

PART 1 - SUMMARY (2-3 sentences): Briefly describe the overall writing style, main topic, tone, and intended audience.

PART 2 - DETAILED ANALYSIS: Provide detailed analysis covering:
1. Writing style (formal, informal, academic, etc.)
2. Topic and subject matter
3. Overall tone
4. Genre and format
5. Target audience

CRITICAL: Be specific and provide clear examples from the text, using exact quotes where possible."""


def evaluation_prompt(sample: str) -> str:
    return f"""Analyze this writing for strengths and weaknesses.

DEFINITIONS:
- STRENGTH: something done WELL that demonstrates writing skill. Presence alone is not a strength
  (mentioning a topic or using quotation marks is neutral; citing a source with author and date is a strength).
- WEAKNESS: something that hurts quality or is done incorrectly: grammatical errors ("he don't"),
  missing or improper citations, run-on sentences or fragments, vague or unsupported claims, repetitive phrasing.
- Neutral observations ("uses facts", "has an introduction") are NOT strengths.

WRITING:
---
{sample}
---

Provide response in TWO PARTS:

PART 1 - SUMMARY (2-3 sentences): Overall assessment of what is done well vs. what needs fixing.

PART 2 - DETAILED FEEDBACK:

STRENGTHS (2-4 items maximum, only genuine quality): state it, quote the text showing it, explain why it shows skill.

WEAKNESSES (2-5 items): state it, quote the problematic text, explain the impact on the reader.

CONSTRAINT: If something is attempted but done incorrectly (like citations), mark it as a weakness."""


def improvement_prompt(sample: str) -> str:
    return f"""Based on this writing, provide specific improvement suggestions:

WRITING:
---
{sample}
---

REQUIREMENTS:
- Every suggestion MUST reference something specific from the actual text
- No generic advice like "improve grammar" without saying where
- Prioritize suggestions by impact

Provide response in TWO PARTS:

PART 1 - SUMMARY (2-3 sentences): The top 2-3 improvements with the biggest impact.

PART 2 - DETAILED IMPROVEMENT SUGGESTIONS (4-6 items, prioritized), each with:
1. LOCATION: quote the problematic text or name the sentence/paragraph
2. THE ISSUE: what is wrong with this exact text
3. IMPACT: why it matters for the reader
4. SPECIFIC FIX: before -> after
5. WHY THIS WORKS

Example:
    LOCATION: "he don't know"
    THE ISSUE: Subject-verb disagreement
    IMPACT: Errors reduce reader confidence in the writer's authority
    SPECIFIC FIX: Change "don't" to "doesn't"
    WHY THIS WORKS: Correct grammar makes the sentence clear and professional"""


def refinement_prompt(sample: str) -> str:
    return f"""Rewrite this writing, improving it while maintaining the original voice and meaning:

ORIGINAL:
---
{sample}
---

REVISION PRIORITIES (in order):
1. Fix critical errors (grammar, subject-verb, spelling, missing citations)
2. Improve clarity (replace vague phrases with specific ones)
3. Enhance flow (sentence variety and connections)
4. Strengthen evidence (add or improve citations/examples)
5. Keep the student's original voice and intended message

Provide response in TWO PARTS:

PART 1 - SUMMARY OF CHANGES (3-4 sentences): The specific improvements made and their impact.

PART 2 - REFINED VERSION: the improved text.

CONSTRAINT: Do NOT change the core message or add new ideas. Improve only expression and correctness.

After the refined version, add a brief note (2-3 sentences) explaining the specific improvements made."""


def followup_prompt(sample: str, style_analysis: Optional[str], content_evaluation: Optional[str]) -> str:
    return f"""Based on the student's writing and the previous analysis (if available), generate 3-5 personalized follow-up questions.

WRITING:
---
{sample}
---

STYLE ANALYSIS (Context):
{style_analysis or "Not available"}

CONTENT EVALUATION (Context):
{content_evaluation or "Not available"}

Generate a list of questions that:
1. Help the student understand their writing style/choices.
2. Encourage critical thinking about their vocabulary or structure.
3. Address specific weaknesses mentioned in the evaluation.
4. Are encouraging and educational.

Format as a simple numbered list with a brief explanation of the 'Goal' for each question."""
