# tests/test_web_views.py
from portal.core.models import User


def _signup_active(client, configure):
    configure(registration_needs_activation=False)
    r = client.post("/api/signup", json={"username": "alice", "email": "alice@example.com", "password": "secret1"})
    assert r.status_code == 201


def _page_login(client, username="alice", password="secret1"):
    return client.post("/site/login", data={"LoginForm[username]": username,
                                            "LoginForm[password]": password, "login-button": ""})


def test_update_account_requires_login(client):
    r = client.get("/user/update-account", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/site/login"


def test_login_page_rejects_bad_password(client, outbox, configure):
    _signup_active(client, configure)
    r = _page_login(client, password="nope")
    assert r.status_code == 200
    assert "Incorrect username or password." in r.text
    assert "access_token" not in client.cookies


def test_update_account_page(client, db, outbox, configure):
    _signup_active(client, configure)
    r = _page_login(client)
    # 登录后跳到修改账户页
    assert r.status_code == 200
    assert "Update account" in r.text
    assert "Type new password ( if you want to change it )" in r.text
    assert "*If you are not changing password, leave that field empty." in r.text

    r = client.post("/user/update-account", data={
        "User[username]": "a", "User[email]": "alice@example.com", "User[newPassword]": "",
    })
    assert "Username should contain at least 2 characters." in r.text

    r = client.post("/user/update-account", data={
        "User[username]": "alice", "User[email]": "alice@example.com", "User[newPassword]": "123",
    })
    assert "Password should contain at least 6 characters." in r.text

    # 纯空白不算“留空”，照样走密码长度校验
    r = client.post("/user/update-account", data={
        "User[username]": "alice", "User[email]": "alice@example.com", "User[newPassword]": "   ",
    })
    assert "Password should contain at least 6 characters." in r.text
    assert "Your account has been updated." not in r.text

    r = client.post("/user/update-account", data={
        "User[username]": "alice", "User[email]": "new@example.com", "User[newPassword]": "",
        "update-button": "",
    })
    assert "Your account has been updated." in r.text
    assert db.query(User).filter(User.username == "alice").one().email == "new@example.com"


def test_password_reset_pages(client, outbox, configure):
    _signup_active(client, configure)
    r = client.post("/site/request-password-reset", data={"PasswordResetRequestForm[email]": "alice@example.com"})
    assert "Check your email for further instructions." in r.text
    link = outbox[-1].link.replace("http://localhost:8000", "")

    assert client.get(link).status_code == 200
    r = client.post(link, data={"ResetPasswordForm[password]": "short"})
    assert "Password should contain at least 6 characters." in r.text
    r = client.post(link, data={"ResetPasswordForm[password]": "brand-new"})
    assert "New password was saved." in r.text

    assert client.get(link).status_code == 400
    assert client.post("/api/login", json={"username": "alice", "password": "brand-new"}).status_code == 200
