from __future__ import annotations

import re

from fastapi.testclient import TestClient

from conftest import CSRF_COOKIE, FakeInterneefyApi


def _nav_keys(html: str) -> list[str]:
    return re.findall(r'data-nav="([a-z-]+)"', html)


def test_unauthenticated_dashboard_redirects_to_login(client: TestClient) -> None:
    response = client.get("/dashboard", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/login?next=%2Fdashboard"


def test_deep_link_is_kept_in_next_parameter(client: TestClient) -> None:
    response = client.get("/dashboard/interns?q=ian", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/login?next=%2Fdashboard%2Finterns%3Fq%3Dian"


def test_garbage_credential_is_treated_as_signed_out(client: TestClient) -> None:
    client.cookies.set("auth-token-storage", "not-a-token")
    response = client.get("/dashboard", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"].startswith("/login")


def test_login_session_and_logout_flow(client: TestClient) -> None:
    login_page = client.get("/login?next=/dashboard/settings")
    assert login_page.status_code == 200
    csrf_token = client.cookies.get(CSRF_COOKIE)
    assert csrf_token

    login_resp = client.post(
        "/login",
        data={
            "email": "ada@acme.test",
            "password": "secret",
            "csrf_token": csrf_token,
            "next": "/dashboard/settings",
        },
        follow_redirects=False,
    )
    assert login_resp.status_code == 303
    assert login_resp.headers["location"] == "/dashboard/settings"

    settings_page = client.get("/dashboard/settings")
    assert settings_page.status_code == 200
    assert "Acme Corp" in settings_page.text
    assert "Ada Admin" in settings_page.text

    logout_resp = client.post(
        "/logout",
        data={"csrf_token": client.cookies.get(CSRF_COOKIE)},
        follow_redirects=False,
    )
    assert logout_resp.status_code == 303
    assert logout_resp.headers["location"] == "/login?notice=logged-out"

    after_logout = client.get("/dashboard", follow_redirects=False)
    assert after_logout.status_code == 303
    assert after_logout.headers["location"] == "/login?next=%2Fdashboard"


def test_login_with_wrong_password_stays_on_login(client: TestClient) -> None:
    client.get("/login")
    response = client.post(
        "/login",
        data={"email": "ada@acme.test", "password": "nope", "csrf_token": client.cookies.get(CSRF_COOKIE)},
        follow_redirects=False,
    )
    assert response.status_code == 401
    assert "Login failed. Please check your credentials and try again." in response.text


def test_login_rejects_open_redirect(client: TestClient) -> None:
    client.get("/login")
    response = client.post(
        "/login",
        data={
            "email": "ada@acme.test",
            "password": "secret",
            "csrf_token": client.cookies.get(CSRF_COOKIE),
            "next": "https://evil.example/",
        },
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"


def test_signup_password_mismatch_is_reported(client: TestClient) -> None:
    client.get("/signup")
    response = client.post(
        "/signup",
        data={
            "company_name": "Beta",
            "full_name": "Bo Boss",
            "email": "bo@beta.test",
            "password": "one",
            "confirm_password": "two",
            "agreed_to_terms": "on",
            "csrf_token": client.cookies.get(CSRF_COOKIE),
        },
    )
    assert response.status_code == 422
    assert "Passwords do not match. Please try again" in response.text


def test_signup_success_redirects_to_login(client: TestClient) -> None:
    client.get("/signup")
    response = client.post(
        "/signup",
        data={
            "company_name": "Beta",
            "full_name": "Bo Boss",
            "email": "bo@beta.test",
            "password": "pw",
            "confirm_password": "pw",
            "agreed_to_terms": "on",
            "csrf_token": client.cookies.get(CSRF_COOKIE),
        },
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/login?notice=registered"


def test_nav_entries_follow_role(client: TestClient, login_as) -> None:
    login_as("ADMIN")
    admin_html = client.get("/dashboard").text
    assert _nav_keys(admin_html) == ["dashboard", "interns", "supervisors", "domains", "profile", "settings"]

    login_as("SUPERVISOR", user_id=2, full_name="Sam Supervisor")
    supervisor_html = client.get("/dashboard").text
    assert _nav_keys(supervisor_html) == ["dashboard", "my-interns", "assigned-tasks", "evaluations", "profile"]

    login_as("INTERN", user_id=10, full_name="Ian Intern")
    intern_html = client.get("/dashboard").text
    assert _nav_keys(intern_html) == ["dashboard", "tasks", "profile"]


def test_intern_cannot_open_admin_pages(client: TestClient, login_as) -> None:
    login_as("INTERN", user_id=10, full_name="Ian Intern")
    response = client.get("/dashboard/settings")
    assert response.status_code == 403
    assert "Not available" in response.text


def test_intern_cannot_create_users(client: TestClient, fake_api: FakeInterneefyApi, login_as) -> None:
    csrf = login_as("INTERN", user_id=10, full_name="Ian Intern")
    response = client.post(
        "/dashboard/users",
        data={"full_name": "Nia", "email": "nia@acme.test", "csrf_token": csrf},
    )
    assert response.status_code == 403
    assert fake_api.count("POST", "/api/users") == 0


def test_admin_dashboard_counters(client: TestClient, login_as) -> None:
    login_as("ADMIN")
    html = client.get("/dashboard").text
    assert 'data-counter="interns">3<' in html
    assert 'data-counter="supervisors">2<' in html
    assert 'data-counter="tasks-in-progress">1<' in html
    assert "Acme Corp" in html


def test_create_user_duplicate_email_keeps_dialog_open(
    client: TestClient,
    fake_api: FakeInterneefyApi,
    login_as,
) -> None:
    csrf = login_as("ADMIN")
    response = client.post(
        "/dashboard/users",
        data={"role": "INTERN", "full_name": "Ian Again", "email": "ian@acme.test", "csrf_token": csrf},
    )
    assert response.status_code == 400
    assert "Email already exists" in response.text
    assert 'data-dialog="add-intern" open' in response.text
    assert 'value="Ian Again"' in response.text
    assert len(fake_api.users) == 6


def test_create_user_validation_error_skips_api(client: TestClient, fake_api: FakeInterneefyApi, login_as) -> None:
    csrf = login_as("ADMIN")
    response = client.post(
        "/dashboard/users",
        data={"role": "SUPERVISOR", "full_name": "", "email": "bad", "csrf_token": csrf},
    )
    assert response.status_code == 422
    assert 'data-dialog="add-supervisor" open' in response.text
    assert "This field is required." in response.text
    assert fake_api.count("POST", "/api/users") == 0


def test_create_user_success_refetches_once_and_closes_dialog(
    client: TestClient,
    fake_api: FakeInterneefyApi,
    login_as,
) -> None:
    csrf = login_as("ADMIN")
    response = client.post(
        "/dashboard/users",
        data={
            "role": "INTERN",
            "full_name": "Nia Newcomer",
            "email": "nia@acme.test",
            "domain": "Design",
            "supervisor_id": "3",
            "csrf_token": csrf,
        },
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard?notice=user-created"
    assert fake_api.users[-1]["supervisorId"] == 3

    before = fake_api.count("GET", "/api/users")
    page = client.get(response.headers["location"])
    assert page.status_code == 200
    assert fake_api.count("GET", "/api/users") == before + 1
    assert "Nia Newcomer" in page.text
    assert "User added successfully." in page.text
    assert 'data-counter="interns">4<' in page.text
    assert 'data-dialog="add-intern">' in page.text
    assert 'value="Nia Newcomer"' not in page.text


def test_delete_user_from_dashboard(client: TestClient, fake_api: FakeInterneefyApi, login_as) -> None:
    csrf = login_as("ADMIN")
    response = client.post("/dashboard/users/11/delete", data={"csrf_token": csrf}, follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard?notice=user-deleted"
    assert all(user["id"] != 11 for user in fake_api.users)


def test_delete_failure_shows_banner(client: TestClient, fake_api: FakeInterneefyApi, login_as) -> None:
    csrf = login_as("ADMIN")
    fake_api.fail("DELETE", "/api/users/11", 403, {"message": "Not allowed"})
    response = client.post("/dashboard/users/11/delete", data={"csrf_token": csrf})
    assert response.status_code == 403
    assert "Failed to delete user: Not allowed" in response.text


def test_invalid_csrf_is_rejected(client: TestClient, fake_api: FakeInterneefyApi, login_as) -> None:
    login_as("ADMIN")
    response = client.post(
        "/dashboard/users",
        data={"full_name": "Nia", "email": "nia@acme.test", "csrf_token": "forged"},
    )
    assert response.status_code == 400
    assert fake_api.count("POST", "/api/users") == 0


def test_dashboard_search_and_role_filter(client: TestClient, login_as) -> None:
    login_as("ADMIN")
    html = client.get("/dashboard?q=sue&role=SUPERVISOR").text
    assert "sue@acme.test" in html
    assert "sam@acme.test" not in html


def test_domain_edit_round_trip(client: TestClient, login_as) -> None:
    csrf = login_as("ADMIN")
    edit_page = client.get("/dashboard/interns?edit=10")
    assert 'data-dialog="edit-intern" open' in edit_page.text
    assert 'value="Web Development"' in edit_page.text

    response = client.post(
        "/dashboard/interns/10",
        data={
            "full_name": "Ian Intern",
            "email": "ian@acme.test",
            "domain": "Data Science",
            "supervisor_id": "3",
            "start_date": "2024-01-15",
            "end_date": "2024-06-15",
            "csrf_token": csrf,
        },
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard/interns?notice=user-updated"

    html = client.get("/dashboard/interns").text
    assert 'data-col="domain">Data Science' in html
    assert "User updated successfully." in html


def test_supervisors_and_domains_pages(client: TestClient, login_as) -> None:
    login_as("ADMIN")
    supervisors = client.get("/dashboard/supervisors").text
    assert 'data-col="supervisees">2<' in supervisors

    domains = client.get("/dashboard/domains").text
    assert 'data-col="domain">Data Science<' in domains
    assert 'data-col="domain">Web Development<' in domains


def test_connectivity_failure_shows_retry_banner(client: TestClient, fake_api: FakeInterneefyApi, login_as) -> None:
    login_as("ADMIN")
    fake_api.offline = True
    response = client.get("/dashboard/interns?q=ian")
    assert response.status_code == 200
    assert 'role="alert"' in response.text
    assert "Failed to load users" in response.text
    assert 'href="/dashboard/interns?q=ian">Retry' in response.text


def test_settings_update(client: TestClient, fake_api: FakeInterneefyApi, login_as) -> None:
    csrf = login_as("ADMIN")
    response = client.post(
        "/dashboard/settings",
        data={"name": "Acme Labs", "logo_url": "", "csrf_token": csrf},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert fake_api.company["name"] == "Acme Labs"
    assert "Acme Labs" in client.get("/dashboard/settings").text


def test_supervisor_dashboard_lists_own_interns(client: TestClient, login_as) -> None:
    login_as("SUPERVISOR", user_id=2, full_name="Sam Supervisor")
    html = client.get("/dashboard").text
    assert 'data-counter="my-interns">2<' in html
    assert 'data-counter="awaiting-review">2<' in html
    assert "Ike Intern" not in html


def test_supervisor_open_tasks_excludes_approved(
    client: TestClient, fake_api: FakeInterneefyApi, login_as
) -> None:
    fake_api.tasks.append(
        {"id": 104, "title": "Ship onboarding guide", "status": "APPROVED", "priority": "LOW", "internId": 11,
         "supervisorId": 2, "intern": {"id": 11, "fullName": "Ivy Intern"}}
    )
    login_as("SUPERVISOR", user_id=2, full_name="Sam Supervisor")
    html = client.get("/dashboard").text
    assert 'data-counter="open-tasks">1<' in html
    assert 'data-counter="awaiting-review">2<' in html


def test_supervisor_cannot_open_intern_board(client: TestClient, login_as) -> None:
    login_as("SUPERVISOR", user_id=2, full_name="Sam Supervisor")
    assert client.get("/dashboard/tasks").status_code == 403


def test_supervisor_creates_task(client: TestClient, fake_api: FakeInterneefyApi, login_as) -> None:
    csrf = login_as("SUPERVISOR", user_id=2, full_name="Sam Supervisor")
    response = client.post(
        "/dashboard/assigned-tasks",
        data={"title": "Prepare demo", "intern_id": "11", "priority": "HIGH", "csrf_token": csrf},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard/assigned-tasks?notice=task-created"
    assert fake_api.tasks[-1]["title"] == "Prepare demo"
    assert fake_api.tasks[-1]["internId"] == 11

    html = client.get("/dashboard/assigned-tasks").text
    assert "Prepare demo" in html
    assert "Clean dataset" not in html


def test_supervisor_task_validation(client: TestClient, fake_api: FakeInterneefyApi, login_as) -> None:
    csrf = login_as("SUPERVISOR", user_id=2, full_name="Sam Supervisor")
    response = client.post(
        "/dashboard/assigned-tasks",
        data={"title": "", "intern_id": "", "csrf_token": csrf},
    )
    assert response.status_code == 422
    assert 'data-dialog="create-task" open' in response.text
    assert fake_api.count("POST", "/api/tasks") == 0


def test_supervisor_deletes_task(client: TestClient, fake_api: FakeInterneefyApi, login_as) -> None:
    csrf = login_as("SUPERVISOR", user_id=2, full_name="Sam Supervisor")
    response = client.post("/dashboard/assigned-tasks/102/delete", data={"csrf_token": csrf}, follow_redirects=False)
    assert response.status_code == 303
    assert all(task["id"] != 102 for task in fake_api.tasks)


def test_supervisor_submits_evaluation(client: TestClient, fake_api: FakeInterneefyApi, login_as) -> None:
    csrf = login_as("SUPERVISOR", user_id=2, full_name="Sam Supervisor")
    response = client.post(
        "/dashboard/evaluations",
        data={
            "intern_id": "10",
            "technical_score": "8",
            "communication_score": "6",
            "teamwork_score": "7",
            "comments": "Solid work",
            "csrf_token": csrf,
        },
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert fake_api.evaluations[-1]["technicalScore"] == 8

    html = client.get("/dashboard/evaluations").text
    assert 'data-col="overall">7.0<' in html


def test_evaluation_score_out_of_range(client: TestClient, fake_api: FakeInterneefyApi, login_as) -> None:
    csrf = login_as("SUPERVISOR", user_id=2, full_name="Sam Supervisor")
    response = client.post(
        "/dashboard/evaluations",
        data={
            "intern_id": "10",
            "technical_score": "11",
            "communication_score": "6",
            "teamwork_score": "7",
            "csrf_token": csrf,
        },
    )
    assert response.status_code == 422
    assert "Score must be between 1 and 10." in response.text
    assert fake_api.evaluations == []


def test_intern_dashboard_shows_progress_and_supervisor(client: TestClient, login_as) -> None:
    login_as("INTERN", user_id=10, full_name="Ian Intern")
    html = client.get("/dashboard").text
    assert 'data-progress="50"' in html
    assert "Sam Supervisor" in html
    assert "Build login page" in html


def test_intern_moves_task(client: TestClient, fake_api: FakeInterneefyApi, login_as) -> None:
    csrf = login_as("INTERN", user_id=10, full_name="Ian Intern")
    response = client.post(
        "/dashboard/tasks/100/status",
        data={"status": "REVIEW", "csrf_token": csrf},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard/tasks?notice=task-updated"
    assert fake_api.tasks[0]["status"] == "REVIEW"

    board = client.get("/dashboard/tasks").text
    assert "Task updated." in board


def test_intern_unknown_status_is_rejected(client: TestClient, fake_api: FakeInterneefyApi, login_as) -> None:
    csrf = login_as("INTERN", user_id=10, full_name="Ian Intern")
    response = client.post("/dashboard/tasks/100/status", data={"status": "DONE", "csrf_token": csrf})
    assert response.status_code == 422
    assert fake_api.count("PUT", "/api/tasks/100") == 0


def test_profile_shows_pending_evaluation(client: TestClient, login_as) -> None:
    login_as("INTERN", user_id=10, full_name="Ian Intern")
    html = client.get("/dashboard/profile").text
    assert "ian@acme.test" in html
    assert 'data-evaluation="pending"' in html
    assert "Your evaluation is pending." in html


def test_profile_shows_submitted_evaluation(client: TestClient, fake_api: FakeInterneefyApi, login_as) -> None:
    fake_api.evaluations.append(
        {"id": 9, "internId": 10, "technicalScore": 9, "communicationScore": 8, "teamworkScore": 8}
    )
    login_as("INTERN", user_id=10, full_name="Ian Intern")
    html = client.get("/dashboard/profile").text
    assert 'data-col="overall">8.3<' in html
