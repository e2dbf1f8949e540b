# tests/test_signup_page.py
from portal.core.models import User
from tests.pages.signup_page import SignupPage


def test_signup_page_renders_form(client):
    page = SignupPage.open_with(client)
    assert page.response.status_code == 200
    assert 'name="SignupForm[username]"' in page.response.text
    assert 'name="signup-button"' in page.response.text


def test_signup_with_empty_fields(client, outbox):
    page = SignupPage.open_with(client)
    page.submit({})
    assert page.response.status_code == 200
    assert page.error_for("username") == "Username cannot be blank."
    assert page.error_for("email") == "Email cannot be blank."
    assert page.error_for("password") == "Password cannot be blank."


def test_signup_with_wrong_email(client, outbox):
    page = SignupPage.open_with(client)
    page.submit({"username": "tester", "email": "tester.email", "password": "tester_password"})
    assert page.error_for("username") is None
    assert page.error_for("email") == "Email is not a valid email address."
    assert page.error_for("password") is None
    # 出错后用户名回填，密码不回填
    assert 'value="tester"' in page.response.text
    assert "tester_password" not in page.response.text


def test_signup_with_short_password(client, outbox):
    page = SignupPage.open_with(client)
    page.submit({"username": "tester", "email": "tester@example.com", "password": "12345"})
    assert page.error_for("password") == "Password should contain at least 6 characters."


def test_successful_signup_and_activation(client, db, outbox):
    page = SignupPage.open_with(client)
    page.submit({"username": "tester", "email": "tester@example.com", "password": "tester_password"})
    assert page.response.status_code == 200
    assert "Please check your email" in page.response.text

    user = db.query(User).filter(User.username == "tester").one()
    assert user.status_name == "Inactive"

    r = client.get(outbox[-1].link.replace("http://localhost:8000", ""))
    assert r.status_code == 200
    assert "Success! You can now log in." in r.text

    r = client.get("/site/activate-account", params={"token": "bogus_1"})
    assert r.status_code == 400
