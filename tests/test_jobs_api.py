"""
HTTP tests for the jobs and analytics endpoints
"""


def create_job(client, headers, **body):
    body.setdefault("description", "Mower will not start")
    response = client.post("/jobs", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_health_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_requests_without_token_are_rejected(client):
    response = client.get("/jobs")
    assert response.status_code == 401


def test_invalid_token_is_rejected(client):
    response = client.get("/jobs", headers={"Authorization": "Bearer not.a.token"})
    assert response.status_code == 401


def test_create_and_fetch_job(client, admin_headers, seed):
    job = create_job(client, admin_headers, customerId=seed["customer"].id)

    assert job["jobCode"] == f"B{seed['business'].id}-WS-1000"
    assert job["status"] == "waiting_assessment"
    assert "timeInStatusDays" in job
    assert "statusEntryTime" in job

    by_id = client.get(f"/jobs/{job['id']}", headers=admin_headers)
    by_code = client.get(f"/jobs/{job['jobCode']}", headers=admin_headers)
    assert by_id.status_code == 200
    assert by_code.json()["id"] == job["id"]


def test_create_requires_description(client, admin_headers):
    response = client.post("/jobs", json={"description": "   "}, headers=admin_headers)
    assert response.status_code == 422


def test_list_jobs_filters(client, admin_headers, seed):
    create_job(client, admin_headers, assignedTo=seed["mechanic"].id)
    create_job(client, admin_headers, customerId=seed["customer"].id)

    everything = client.get("/jobs", headers=admin_headers).json()
    mine = client.get(f"/jobs?assignedTo={seed['mechanic'].id}", headers=admin_headers).json()
    theirs = client.get(f"/jobs?customerId={seed['customer'].id}", headers=admin_headers).json()

    assert len(everything) == 2
    assert [j["assignedTo"] for j in mine] == [seed["mechanic"].id]
    assert [j["customerId"] for j in theirs] == [seed["customer"].id]


def test_update_moves_status_and_exposes_timeline(client, admin_headers, seed):
    job = create_job(client, admin_headers)

    response = client.patch(
        f"/jobs/{job['id']}", json={"assignedTo": seed["mechanic"].id}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "in_progress"

    timeline = client.get(f"/jobs/{job['id']}/timeline", headers=admin_headers).json()
    assert [e["status"] for e in timeline] == ["waiting_assessment", "in_progress"]
    assert [e["isCurrent"] for e in timeline] == [False, True]


def test_put_is_accepted_for_updates(client, admin_headers):
    job = create_job(client, admin_headers)
    response = client.put(f"/jobs/{job['id']}", json={"taskDetails": "Replace belt"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["taskDetails"] == "Replace belt"


def test_invalid_status_and_transition_are_422(client, admin_headers):
    job = create_job(client, admin_headers)

    unknown = client.patch(f"/jobs/{job['id']}", json={"status": "parts_ordered"}, headers=admin_headers)
    illegal = client.patch(f"/jobs/{job['id']}", json={"status": "completed"}, headers=admin_headers)

    assert unknown.status_code == 422
    assert illegal.status_code == 422


def test_version_conflict_is_409(client, admin_headers):
    job = create_job(client, admin_headers)
    response = client.patch(
        f"/jobs/{job['id']}", json={"description": "Changed", "version": 7}, headers=admin_headers
    )
    assert response.status_code == 409


def test_missing_job_is_404(client, admin_headers):
    assert client.get("/jobs/99999", headers=admin_headers).status_code == 404
    assert client.patch("/jobs/99999", json={"status": "in_progress"}, headers=admin_headers).status_code == 404
    assert client.delete("/jobs/99999", headers=admin_headers).status_code == 404
    assert client.get("/jobs/99999/timeline", headers=admin_headers).status_code == 404
    assert client.get("/jobs/99999/updates", headers=admin_headers).status_code == 404


def test_jobs_are_isolated_per_business(client, admin_headers, outsider_headers):
    job = create_job(client, admin_headers)
    assert client.get(f"/jobs/{job['id']}", headers=outsider_headers).status_code == 404
    assert client.get("/jobs", headers=outsider_headers).json() == []


def test_delete_job(client, admin_headers):
    job = create_job(client, admin_headers)
    response = client.delete(f"/jobs/{job['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert client.get(f"/jobs/{job['id']}", headers=admin_headers).status_code == 404


def test_generate_job_id_reserves_codes(client, admin_headers, seed):
    prefix = f"B{seed['business'].id}-WS-"
    first = client.get("/jobs/generate-job-id", headers=admin_headers).json()["jobId"]
    job = create_job(client, admin_headers)

    assert first == f"{prefix}1000"
    assert job["jobCode"] == f"{prefix}1001"


def test_job_updates_endpoints(client, admin_headers):
    job = create_job(client, admin_headers)

    created = client.post(
        f"/jobs/{job['id']}/updates", json={"note": "Quoted for new blade", "isPublic": False}, headers=admin_headers
    )
    assert created.status_code == 201
    assert created.json()["isPublic"] is False

    listed = client.get(f"/jobs/{job['id']}/updates", headers=admin_headers).json()
    assert [n["note"] for n in listed] == ["Quoted for new blade"]


def test_public_tracker(client, admin_headers, seed):
    job = create_job(client, admin_headers, customerId=seed["customer"].id)
    business_id = seed["business"].id

    ok = client.get(
        "/jobs/public/tracker",
        params={"jobId": job["jobCode"], "email": "jamie@example.com", "businessId": business_id},
    )
    wrong_email = client.get(
        "/jobs/public/tracker",
        params={"jobId": job["jobCode"], "email": "nope@example.com", "businessId": business_id},
    )
    missing = client.get(
        "/jobs/public/tracker",
        params={"jobId": "B0-WS-1", "email": "jamie@example.com", "businessId": business_id},
    )

    assert ok.status_code == 200
    assert ok.json()["job"]["statusLabel"] == "Waiting Assessment"
    assert wrong_email.status_code == 403
    assert missing.status_code == 404


def test_public_tracker_blank_email_is_rejected(client, admin_headers, seed):
    job = create_job(client, admin_headers, customerId=seed["customer_no_email"].id)
    params = {"jobId": job["jobCode"], "businessId": seed["business"].id}

    blank = client.get("/jobs/public/tracker", params={**params, "email": ""})
    guessed = client.get("/jobs/public/tracker", params={**params, "email": "guess@example.com"})

    assert blank.status_code == 400
    assert guessed.status_code == 403


def test_analytics_summary(client, admin_headers, seed):
    create_job(client, admin_headers, customerId=seed["customer"].id)
    response = client.get("/analytics/summary", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["activeJobs"] == 1
    assert data["totalCustomers"] == 2
    assert {"status": "waiting_assessment", "name": "Waiting Assessment", "count": 1} in data["jobsByStatus"]


def test_callback_analytics_requires_admin(client, admin_headers, mechanic_headers):
    assert client.get("/analytics/callbacks", headers=mechanic_headers).status_code == 403

    response = client.get(
        "/analytics/callbacks", params={"fromDate": "2024-01-01", "toDate": "2024-01-31"}, headers=admin_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["summary"]["totalCallbacks"] == 0
    assert data["dateRange"] == {"from": "2024-01-01", "to": "2024-01-31"}
    assert len(data["dailyTrends"]) == 30


def test_callback_analytics_rejects_inverted_range(client, admin_headers):
    response = client.get(
        "/analytics/callbacks", params={"fromDate": "2024-02-01", "toDate": "2024-01-01"}, headers=admin_headers
    )
    assert response.status_code == 422
