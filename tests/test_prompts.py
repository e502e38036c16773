"""Tests for caller resolution and role-conditioned system prompts."""

from __future__ import annotations

from clinic_assistant.caller import CallerContext, Role
from clinic_assistant.knowledge import get_clinic_knowledge, get_serialized_knowledge
from clinic_assistant.prompts import get_system_prompt, prompt_for


class TestCallerContext:
    def test_defaults_to_anonymous(self):
        caller = CallerContext.build(email=None, role_name=None)
        assert caller.role is Role.ANONYMOUS
        assert not caller.is_identified

    def test_email_makes_a_patient(self):
        caller = CallerContext.build(email=" Jane@Example.com ", role_name="user")
        assert caller.role is Role.PATIENT
        assert caller.email == "jane@example.com"

    def test_admin_hint(self):
        caller = CallerContext.build(email="dr@clinic.com", role_name="admin")
        assert caller.is_admin
        assert caller.is_identified

    def test_admin_hint_without_email(self):
        caller = CallerContext.build(email=None, role_name="admin")
        assert caller.is_admin
        assert caller.email is None

    def test_blank_email_is_anonymous(self):
        caller = CallerContext.build(email="   ", role_name="user")
        assert caller.role is Role.ANONYMOUS
        assert caller.email is None


class TestSystemPrompt:
    def test_admin_prompt(self):
        prompt = get_system_prompt(Role.ADMIN, is_identified=True)
        assert "Clinic Admin Dashboard" in prompt

    def test_admin_prompt_does_not_need_an_email(self):
        assert get_system_prompt(Role.ADMIN, False) == get_system_prompt(Role.ADMIN, True)

    def test_identified_patient_prompt(self):
        prompt = get_system_prompt(Role.PATIENT, is_identified=True)
        assert "book [service] on [YYYY-MM-DD]" in prompt
        assert "MUST login first" not in prompt

    def test_anonymous_prompt_redirects_to_login(self):
        prompt = get_system_prompt(Role.ANONYMOUS, is_identified=False)
        assert "MUST login first" in prompt

    def test_prompts_are_distinct(self):
        prompts = {
            get_system_prompt(Role.ADMIN, True),
            get_system_prompt(Role.PATIENT, True),
            get_system_prompt(Role.ANONYMOUS, False),
        }
        assert len(prompts) == 3

    def test_knowledge_is_embedded(self):
        prompt = prompt_for(CallerContext(role=Role.PATIENT, email="jane@example.com"))
        assert get_serialized_knowledge() in prompt
        assert "Smile Care Dental Clinic" in prompt


class TestKnowledge:
    def test_document_has_core_sections(self):
        knowledge = get_clinic_knowledge()
        assert knowledge["clinic"]["name"] == "Smile Care Dental Clinic"
        assert "services" in knowledge
