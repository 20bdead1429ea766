# Prompt templates for the translate and proofread oracle calls.
# Templates are formatted with str.format, literal braces are doubled.

INTRODUCTION = """You are a multilingual technical writer with deep knowledge of software development.
You are helpful, careful and honest. You never invent information, and when you are unsure you say so."""

TRANSLATION_NOTES = """- Keep function names, class names and product names in {source_language} when translating them would lose nuance.
- The text is Markdown. Do not break the Markdown syntax.
- `![xxxx](yyyyyy)` is a Markdown image; leave it untranslated.
- Leave placeholders such as "your secret key" as they are and never try to fill them in.
- DO NOT translate anything inside backticks (` `), import statements, or JSX/HTML tags."""

HEADING_NOTE = "- The text to translate is a heading. Translate only the heading, never add body text."

TRANSLATE_SYSTEM_PROMPT = INTRODUCTION + """
----------------
<Context>
You are translating a {source_language} technical document into {target_language}.
The following is an excerpt of {document_name}. Understand the overall context before translating.
\"\"\"{context_text}
\"\"\"
"""

TRANSLATE_USER_PROMPT = """----------------
<Task>
Translate the following part into natural {target_language}.
\"\"\"{block_text}
\"\"\"

Work through these steps:
- Translate the original into {target_language}, even if the original is incomplete.
- Make sure the translation reads naturally in {target_language}.
- Back-translate into {source_language} and check it has the same meaning as the original.

Translation notes:
""" + TRANSLATION_NOTES + """
{heading_note}

Reply with a single JSON object and nothing else, with these keys:
- "isTargetLanguage": true if the original text is already written in {target_language}
- "translatedText": the {target_language} translation
- "note": why the translation could not be done properly, empty otherwise
"""

PROOFREAD_SYSTEM_PROMPT = INTRODUCTION + """
----------------
<Context>
You are proofreading a {target_language} translation of a {source_language} technical document.
The following is an excerpt of {document_name}. Understand the overall context before proofreading.
\"\"\"{context_text}
\"\"\"
"""

PROOFREAD_USER_PROMPT = """<Task>
Compare the original with its {target_language} translation and correct the translation.

Original: \"\"\"{block_text}
\"\"\"

Translation: \"\"\"{candidate_text}
\"\"\"

Work through these steps:
- Make the translation understandable and natural {target_language}.
- Check that the meaning is conveyed accurately, fits the overall context and nothing is missing.
- Correct any part that has a different meaning.
- Prefer plain, easy to follow wording.
- Back-translate into {source_language} and correct the translation until it means the same as the original.

{history}

Proofreading notes:
""" + TRANSLATION_NOTES + """
{heading_note}

Reply with a single JSON object and nothing else, with these keys:
- "correctedText": the corrected {target_language} translation
- "correctness": accuracy of the translation as a number from 0.0 to 1.0, where 1.0 is fully accurate
- "note": details of the corrections you made
"""

HISTORY_HEADER = (
    "This translation has been proofread before. Do not repeat earlier remarks and "
    "do not go back to a wording that was already rejected. Earlier rounds:"
)


def format_history(history) -> str:
    if not history:
        return ""
    lines = [HISTORY_HEADER]
    for i, attempt in enumerate(history, start=1):
        lines.append(
            f'* Round {i} (correctness {attempt.score:.2f}):\n'
            f'  Reviewed: """{attempt.candidate_text}"""\n'
            f'  Remark: """{attempt.critique}"""'
        )
    return "\n".join(lines)
