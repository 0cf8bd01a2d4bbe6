"""Prompt for shift change notification copy."""

NOTIFICATION_COPY_PROMPT = """Generate concise, friendly notifications for staff about shift changes.

Context:
- Employee: {user_name}
- Old shifts: {old_shifts}
- New shifts: {new_shifts}
- Timezone: {timezone}

---

Write: One short push title (max 50 chars) + one-line body (max 150 chars).
If multiple changes, summarise count and next shift time. Avoid jargon.
An empty new shift list with old shifts means those shifts were removed.

Example outputs:
- title: "Your roster has been updated"
  body: "3 shifts changed. Next shift: Tue 9am-5pm"
- title: "New shift added"
  body: "Thu 5pm-10pm as Server. Check your roster."
- title: "Shift time changed"
  body: "Wed now starts at 8am (was 9am)"
"""
