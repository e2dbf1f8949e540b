# tests/pages/signup_page.py
"""注册页 page object：按字段名填表，再"点击" signup-button（连同按钮名一起提交）。"""
from typing import Dict, Optional

from fastapi.testclient import TestClient


class SignupPage:
    route = "/site/signup"
    form_name = "SignupForm"
    button = "signup-button"

    def __init__(self, client: TestClient):
        self.client = client
        self.fields: Dict[str, str] = {}
        self.response = None

    @classmethod
    def open_with(cls, client: TestClient) -> "SignupPage":
        page = cls(client)
        page.response = client.get(cls.route)
        return page

    def selector(self, field: str) -> str:
        input_type = "textarea" if field == "body" else "input"
        return f'{input_type}[name="{self.form_name}[{field}]"]'

    def fill_field(self, field: str, value: str):
        name = f"{self.form_name}[{field}]"
        assert name in self.response.text, f"field not found: {self.selector(field)}"
        self.fields[name] = value

    def click(self, button: str):
        assert f'name="{button}"' in self.response.text, f"button not found: {button}"
        self.response = self.client.post(self.route, data={**self.fields, button: ""})
        return self.response

    def submit(self, signup_data: Dict[str, str]):
        for field, value in signup_data.items():
            self.fill_field(field, value)
        return self.click(self.button)

    def error_for(self, field: str) -> Optional[str]:
        """读出字段下方的错误提示（没有则 None）。"""
        html = self.response.text
        marker = f'name="{self.form_name}[{field}]"'
        start = html.find(marker)
        if start < 0:
            return None
        tag = '<p class="help-block help-block-error">'
        p = html.find(tag, start)
        if p < 0:
            return None
        text = html[p + len(tag):html.find("</p>", p)].strip()
        return text or None
