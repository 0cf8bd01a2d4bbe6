"""Prompts for roster table extraction and shift normalization.

Both prompts put the data first and the instructions after it, so the
model reads the whole table before being told what to emit.
"""

TABLE_EXTRACTION_PROMPT = """You are extracting roster tables from screenshots or PDFs.
Output structured cells with row/column labels before any interpretation.

The attached image is a weekly work schedule.

---

Extract the roster table from the image above.

- Capture header dates, per-employee rows, start/end times, breaks, role/notes.
- columns: every column header exactly as printed, left to right.
- rows: one object per table row, mapping each column header to the cell text.
- Do not guess missing cells; leave blank strings.
- Do not reformat times, dates or names. Copy them as written.
"""

SHIFT_NORMALIZATION_PROMPT = """You convert noisy roster cells into canonical shifts.

Raw roster data:
{raw_table}

Week anchor (Monday of the roster week): {week_anchor}

---

Convert the roster data above into a list of shifts.

For each worked shift, provide:
- employee_name: The employee's name exactly as written in the row.
- role: Role or station if the table gives one, otherwise null.
- date: ISO date (YYYY-MM-DD). Resolve day labels like "Mon 27/10" or "Tue"
  to absolute dates. When a week anchor is given, day labels refer to that
  week.
- start_time / end_time: 24-hour HH:mm. Normalise "9", "9am" and "0900" to "09:00".
- break_min: Break length in minutes if stated, otherwise null.
- notes: Any other text in the cell, otherwise null.

RULES:
1. One item per employee per worked day.
2. If a cell contains "OFF", "AL" or is blank, emit nothing for that day.
3. Never invent names, times or dates that are not in the table.
"""
