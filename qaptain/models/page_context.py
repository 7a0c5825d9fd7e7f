"""Snapshot of a loaded page, as handed to the scenario oracle."""

from typing import List, Optional
from pydantic import BaseModel, Field


class FieldDescriptor(BaseModel):
    """One input, textarea or select inside a form."""
    name: str = Field(default="", description="name attribute")
    type: str = Field(default="text", description="type attribute (select/textarea for those tags)")
    placeholder: str = Field(default="", description="placeholder attribute")

    class Config:
        frozen = True

    @property
    def semantic_label(self) -> str:
        """Label used for fake-value generation: name and placeholder, lower-cased."""
        return f"{self.name} {self.placeholder}".strip().lower()


class FormDescriptor(BaseModel):
    """A <form> element and its fields in document order."""
    id: str = Field(default="", description="Form id attribute")
    class_name: str = Field(default="", alias="className", description="Form class attribute")
    inputs: List[FieldDescriptor] = Field(default_factory=list)

    class Config:
        frozen = True
        populate_by_name = True


class LinkDescriptor(BaseModel):
    """An anchor inside a <nav> element."""
    href: str = ""
    text: Optional[str] = None

    class Config:
        frozen = True


class PageContext(BaseModel):
    """Read-only snapshot produced once per page load."""
    title: str = ""
    url: str
    has_login_form: bool = Field(default=False, alias="hasLoginForm")
    has_contact_form: bool = Field(default=False, alias="hasContactForm")
    has_search_form: bool = Field(default=False, alias="hasSearchForm")
    forms: List[FormDescriptor] = Field(default_factory=list)
    nav_links: List[LinkDescriptor] = Field(default_factory=list, alias="navLinks")

    class Config:
        frozen = True
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "title": "Sign in",
                "url": "https://example.com/login",
                "hasLoginForm": True,
                "hasContactForm": False,
                "hasSearchForm": False,
                "forms": [{
                    "id": "login-form",
                    "className": "login",
                    "inputs": [
                        {"name": "email", "type": "email", "placeholder": "Email"},
                        {"name": "password", "type": "password", "placeholder": "Password"}
                    ]
                }],
                "navLinks": [{"href": "https://example.com/", "text": "Home"}]
            }
        }

    @property
    def has_forms(self) -> bool:
        return len(self.forms) > 0

    def all_fields(self) -> List[FieldDescriptor]:
        """Every field of every form, in document order."""
        return [field for form in self.forms for field in form.inputs]
