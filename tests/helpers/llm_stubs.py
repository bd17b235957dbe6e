"""Scripted LLM collaborators for pipeline tests.

``ScriptedOdooLLM`` recognizes which stage a prompt belongs to from the
first line of the rendered template and answers with canned text. Any stage
answer may be overridden with a string, a callable(prompt) -> str, or an
exception instance to raise.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Dict, List, Optional, Union

Answer = Union[str, Callable[[str], str], Exception]

_STAGE_PREFIXES = [
    ("validation", "Classify the following request"),
    ("specification", "Write functional specifications"),
    ("tasks", "Turn these Odoo"),
    ("menu", "Design the menu"),
    ("file", "Generate the complete content of"),
    ("fix", "The file `"),
    ("essential", "Generate `"),
    ("summary", "Summarize the following"),
]

_FILE_PATH_RE = re.compile(r"`([^`]+)`")

HELPDESK_TASKS = """## Core Files
- [ ] `helpdesk_sla/__manifest__.py`
- [ ] `helpdesk_sla/__init__.py`

## Models
- [ ] `helpdesk_sla/models/__init__.py` (import all model files)
- [ ] `helpdesk_sla/models/helpdesk_ticket.py`

## Views
- [ ] `helpdesk_sla/views/helpdesk_ticket_views.xml`
- [ ] `helpdesk_sla/views/helpdesk_sla_menu.xml`
"""

MODEL_SOURCE = '''from odoo import api, fields, models


class HelpdeskTicket(models.Model):
    _name = "helpdesk.ticket"
    _description = "Helpdesk Ticket"

    name = fields.Char(required=True)
    sla_deadline = fields.Datetime()
'''

VIEW_SOURCE = """<odoo>
    <record id="helpdesk_ticket_view_form" model="ir.ui.view">
        <field name="name">helpdesk.ticket.form</field>
        <field name="model">helpdesk.ticket</field>
        <field name="arch" type="xml">
            <form><field name="name"/></form>
        </field>
    </record>
</odoo>
"""

ACCESS_SOURCE = (
    "id,name,model_id:id,group_id:id,perm_read,perm_write,perm_create,perm_unlink\n"
    "access_helpdesk_ticket,helpdesk.ticket,model_helpdesk_ticket,base.group_user,1,1,1,1\n"
)


def default_file_body(path: str) -> str:
    if path.endswith("__manifest__.py"):
        return "{\n    'name': 'Helpdesk SLA',\n    'version': '17.0.1.0.0',\n    'depends': ['base'],\n}\n"
    if path.endswith("__init__.py"):
        return "# -*- coding: utf-8 -*-\nfrom . import models\n"
    if path.endswith(".py"):
        return MODEL_SOURCE
    if path.endswith(".xml"):
        return VIEW_SOURCE
    if path.endswith(".csv"):
        return ACCESS_SOURCE
    return f"content generated for {path}\n"


def stage_of(prompt: str) -> str:
    head = prompt.lstrip()
    for stage, prefix in _STAGE_PREFIXES:
        if head.startswith(prefix):
            return stage
    return "unknown"


class ScriptedOdooLLM:
    """Answers every pipeline stage; records each call in ``calls``."""

    def __init__(
        self,
        *,
        is_odoo: bool = True,
        tasks: str = HELPDESK_TASKS,
        answers: Optional[Dict[str, Answer]] = None,
        files: Optional[Dict[str, Answer]] = None,
    ):
        self.is_odoo = is_odoo
        self.tasks = tasks
        self.answers: Dict[str, Answer] = dict(answers or {})
        self.files: Dict[str, Answer] = dict(files or {})
        self.calls: List[Dict[str, Any]] = []

    def complete(self, prompt: str, **kwargs: Any) -> str:
        stage = stage_of(prompt)
        self.calls.append({"stage": stage, "prompt": prompt, **kwargs})
        if stage == "file" and self.files:
            m = _FILE_PATH_RE.search(prompt)
            if m and m.group(1) in self.files:
                return _resolve(self.files[m.group(1)], prompt)
        if stage in self.answers:
            return _resolve(self.answers[stage], prompt)
        return self._default(stage, prompt)

    def stages(self) -> List[str]:
        return [c["stage"] for c in self.calls]

    def _default(self, stage: str, prompt: str) -> str:
        if stage == "validation":
            reason = "An Odoo helpdesk module." if self.is_odoo else "A React frontend, not Odoo."
            return json.dumps({"is_odoo_request": self.is_odoo, "reason": reason})
        if stage == "specification":
            return "# Helpdesk SLA\n\n1. Tickets carry an SLA deadline.\n2. Managers see overdue tickets.\n3. Model helpdesk.ticket.\n"
        if stage == "tasks":
            return self.tasks
        if stage == "menu":
            return "Helpdesk > Tickets (helpdesk.ticket, list/form)\nHelpdesk > Configuration > SLA Policies\n"
        if stage in ("file", "essential", "fix"):
            m = _FILE_PATH_RE.search(prompt)
            return default_file_body(m.group(1) if m else "")
        if stage == "summary":
            return "- helpdesk.ticket with SLA deadline"
        raise AssertionError(f"Unexpected prompt: {prompt[:80]!r}")


def _resolve(answer: Answer, prompt: str) -> str:
    if isinstance(answer, Exception):
        raise answer
    if callable(answer):
        return answer(prompt)
    return answer


class FlakyLLM:
    """Raises the queued exceptions first, then returns ``text``."""

    def __init__(self, failures: List[Exception], text: str = "ok"):
        self._failures = list(failures)
        self._text = text
        self.calls = 0

    def complete(self, prompt: str, **kwargs: Any) -> str:
        self.calls += 1
        if self._failures:
            raise self._failures.pop(0)
        return self._text
