SYSTEM_PROMPT = """You are filling in a job application on behalf of the candidate described below.
Answer in the first person, truthfully, using only facts from the resume. When the
resume does not say, give the most reasonable answer a hiring manager would accept.
Never add explanations, quotes or markdown around the answer.

### CANDIDATE RESUME ###
{resume}

### JOB CONTEXT ###
{job_context}
"""


TEXTUAL_PROMPT = """Answer this application question in the language it is asked in.
Short factual questions get a short answer (a name, a number, a few words).
Open questions get 2-4 concise sentences.

Question: {question}
"""


TEXTUAL_RETRY_PROMPT = """I previously answered a job application question and the form REJECTED it.

Question: "{question}"
My previous answer: "{previous_answer}"
Error received: "{error}"

Provide a corrected answer that satisfies the error message.
Respond with only the answer (no explanation, just the text)."""


NUMERIC_PROMPT = """Answer the question with a single number and nothing else.
For years of experience with a technology, count the years from the resume; if it is
not mentioned use {default}.

Question: {question}
"""


NUMERIC_RETRY_PROMPT = """You previously answered a numeric job application question and the form REJECTED it.

Question: {question}
Your previous answer: {previous_answer}
Error received: {error}

Provide a corrected numeric answer that addresses the error message.
Respond with ONLY a number (no explanation, no units)."""


OPTIONS_PROMPT = """Choose the option that best answers the question for this candidate.

Question: {question}

Options:
{options}

Respond with ONLY the exact text of the chosen option."""


OPTIONS_RETRY_PROMPT = """You previously answered a job application question and the form REJECTED it.

Question: {question}
Your previous answer: {previous_answer}
Error received: {error}

Options:
{options}

Select a DIFFERENT option that addresses the error. Respond with ONLY the exact text of the chosen option."""


CHECKBOX_SELECTION_PROMPT = """The question below allows several answers. Select every option that applies
to the candidate (at least one).

Question: {question}

Options:
{options}

Respond with the numbers of the selected options, separated by commas (for example: 1, 3)."""


DATE_HINT = "Answer with a date in YYYY-MM-DD format (use the 1st of the month if the day is unknown)."


TAILOR_RESUME_PROMPT = """### ROLE ###
You are an expert technical recruiter rewriting a resume for one specific job.

### TASK ###
Rewrite the resume below so that it emphasizes the experience, skills and keywords most
relevant to the job description. Keep every fact true: do not invent employers, dates,
degrees, certifications or skills the candidate does not have. You may reorder sections,
rephrase bullet points, drop irrelevant bullet points and mirror the job's vocabulary.

### JOB DESCRIPTION ###
{job_description}

### BASE RESUME (YAML) ###
{resume}

### OUTPUT ###
Return ONLY the tailored resume as valid YAML with the same top-level keys as the input.
"""


COVER_LETTER_PROMPT_STRUCTURED = """### ROLE ###
You are an assistant writing a concise, tailored cover letter for a job application.

### CONTEXT ###
**Job:**
- Title: {job_title}
- Company: {company_name}
- Location: {location}
- Description: {description}

**Candidate resume:**
```
{resume_text}
```

### RULES ###
- Output only through the structured fields: greeting, paragraphs, closing, signature.
- `paragraphs`: 3 to 4 plain-text paragraphs, each at least 40 words, no markdown.
- Connect 2-3 concrete achievements from the resume to the job's requirements.
- Professional, confident tone; 250-380 words in total.
- `signature`: the candidate's full name, email and phone from the resume.
"""
