"""Built-in templates.

Seeded as global templates at bootstrap, and used as the last fallback when
neither an owner nor a global template exists for a type.
"""

from __future__ import annotations

from ..core.enums import TemplateType, TriggerKind

_EMAIL_FOOTER = """
<p style="color:#666;font-size:12px">This is an automated message from {{school_name}}.</p>
"""

BUILTIN_TEMPLATES: dict[TemplateType, str] = {
    TemplateType.ABSENCE_EMAIL: """
<h2>Absence Notification</h2>
<p>Dear {{guardian_name}},</p>
<p>We want to inform you that <strong>{{student_name}}</strong> (Roll No: {{roll_number}})
was marked <strong>ABSENT</strong> in <strong>{{class_name}} {{section}}</strong> on <strong>{{date}}</strong>.</p>
<p>If this is incorrect or there was a valid reason for the absence, please contact the school.</p>
""" + _EMAIL_FOOTER,
    TemplateType.ABSENCE_SMS: (
        "ABSENCE ALERT: {{student_name}} ({{roll_number}}) was absent from {{class_name}} {{section}} "
        "on {{date}}. If this is an error, please contact {{school_name}}."
    ),
    TemplateType.LOW_ATTENDANCE_EMAIL: """
<h2>Low Attendance Alert</h2>
<p>Dear {{guardian_name}},</p>
<p><strong>{{student_name}}</strong>'s attendance in <strong>{{class_name}} {{section}}</strong>
is <strong>{{attendance_rate}}%</strong> ({{present_days}}/{{total_days}} days) over the last 30 days,
below the required minimum of {{threshold}}%.</p>
<p>Please ensure regular attendance, and contact us if anything is affecting it.</p>
""" + _EMAIL_FOOTER,
    TemplateType.LOW_ATTENDANCE_SMS: (
        "LOW ATTENDANCE: {{student_name}} has {{attendance_rate}}% attendance "
        "({{present_days}}/{{total_days}} days). Minimum required: {{threshold}}%."
    ),
    TemplateType.WEEKLY_REPORT_EMAIL: """
<h2>Weekly Attendance Report</h2>
<p>Dear {{guardian_name}},</p>
<p>Attendance summary for <strong>{{student_name}}</strong> ({{class_name}} {{section}}),
{{start_date}} to {{end_date}}:</p>
<ul>
  <li>Present: {{present_days}}</li>
  <li>Absent: {{absent_days}}</li>
  <li>Late: {{late_days}}</li>
  <li>Excused: {{excused_days}}</li>
  <li>Attendance: {{attendance_rate}}%</li>
</ul>
""" + _EMAIL_FOOTER,
    TemplateType.WEEKLY_REPORT_SMS: (
        "WEEKLY REPORT: {{student_name}} - {{attendance_rate}}% attendance this week "
        "({{present_days}}/{{total_days}} days present)."
    ),
    TemplateType.MONTHLY_REPORT_EMAIL: """
<h2>Monthly Attendance Report</h2>
<p>Dear {{guardian_name}},</p>
<p>Attendance summary for <strong>{{student_name}}</strong> ({{class_name}} {{section}}),
{{start_date}} to {{end_date}}:</p>
<ul>
  <li>Total days: {{total_days}}</li>
  <li>Present: {{present_days}}</li>
  <li>Absent: {{absent_days}}</li>
  <li>Late: {{late_days}}</li>
  <li>Excused: {{excused_days}}</li>
  <li>Attendance: {{attendance_rate}}%</li>
</ul>
""" + _EMAIL_FOOTER,
    TemplateType.MONTHLY_REPORT_SMS: (
        "MONTHLY REPORT: {{student_name}} achieved {{attendance_rate}}% attendance this month "
        "({{present_days}}/{{total_days}} days)."
    ),
    TemplateType.CUSTOM: "Dear {{guardian_name}}, {{message}} - {{school_name}}",
}

EMAIL_SUBJECTS: dict[TriggerKind, str] = {
    TriggerKind.ABSENCE: "Absence Alert: {{student_name}} - {{date}}",
    TriggerKind.LOW_ATTENDANCE: "Low Attendance Alert: {{student_name}} ({{attendance_rate}}%)",
    TriggerKind.WEEKLY_REPORT: "Weekly Attendance Report: {{student_name}}",
    TriggerKind.MONTHLY_REPORT: "Monthly Attendance Report: {{student_name}}",
    TriggerKind.CUSTOM: "{{subject}}",
}
