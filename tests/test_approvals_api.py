def approvals_for(client, auth_headers, user, claim_id):
    response = client.get("/api/approvals", params={"claimId": claim_id}, headers=auth_headers(user))
    assert response.status_code == 200, response.text
    return response.json()


def pending_approval(client, auth_headers, user, claim_id):
    return next(a for a in approvals_for(client, auth_headers, user, claim_id) if a["status"] == "pending")


def decide(client, auth_headers, actor, approval_id, **body):
    return client.patch(f"/api/approvals/{approval_id}", json=body, headers=auth_headers(actor))


def test_listing_requires_a_filter(client, org, auth_headers):
    response = client.get("/api/approvals", headers=auth_headers(org.emma))
    assert response.status_code == 400


def test_listing_carries_approver_profile(client, org, auth_headers, submit_claim):
    claim = submit_claim(org.emma, 100)
    approvals = approvals_for(client, auth_headers, org.emma, claim["id"])
    assert approvals[0]["approverName"] == "Manoj"
    assert approvals[0]["approverTitle"] == org.manoj.designation
    assert approvals[0]["approverDepartment"] == "Engineering"


def test_listing_by_approver(client, org, auth_headers, submit_claim):
    first = submit_claim(org.emma, 100)
    second = submit_claim(org.emma, 200)
    submit_claim(org.manoj, 300)

    response = client.get("/api/approvals", params={"approverId": org.manoj.id}, headers=auth_headers(org.manoj))
    assert [a["claimId"] for a in response.json()] == [first["id"], second["id"]]


def test_chain_advances_to_finance(client, org, auth_headers, submit_claim):
    claim = submit_claim(org.emma, 8000)
    first = pending_approval(client, auth_headers, org.emma, claim["id"])
    assert first["nextApproverId"] == org.fiona.id

    response = decide(client, auth_headers, org.manoj, first["id"], status="approved", notes="ok by me")
    assert response.status_code == 200
    assert response.json()["status"] == "approved"

    moved = client.get(f"/api/claims/{claim['id']}", headers=auth_headers(org.emma)).json()
    assert moved["status"] == "submitted"
    assert moved["currentApproverId"] == org.fiona.id

    approvals = approvals_for(client, auth_headers, org.emma, claim["id"])
    assert [(a["approvalLevel"], a["approverId"], a["status"]) for a in approvals] == [
        (1, org.manoj.id, "approved"),
        (2, org.fiona.id, "pending"),
    ]
    assert approvals[1]["nextApproverId"] is None

    final = decide(client, auth_headers, org.fiona, approvals[1]["id"], status="approved")
    assert final.status_code == 200

    approved = client.get(f"/api/claims/{claim['id']}", headers=auth_headers(org.emma)).json()
    assert approved["status"] == "approved"
    assert approved["approvedAmount"] == 8000
    assert approved["currentApproverId"] is None


def test_director_chain_to_completion(client, org, auth_headers, submit_claim):
    claim = submit_claim(org.emma, 12500)
    for approver in (org.manoj, org.fiona, org.dina):
        current = pending_approval(client, auth_headers, org.emma, claim["id"])
        assert current["approverId"] == approver.id
        assert decide(client, auth_headers, approver, current["id"], status="approved").status_code == 200

    approvals = approvals_for(client, auth_headers, org.emma, claim["id"])
    assert [a["approvalLevel"] for a in approvals] == [1, 2, 3]
    assert all(a["status"] == "approved" for a in approvals)

    claim = client.get(f"/api/claims/{claim['id']}", headers=auth_headers(org.emma)).json()
    assert claim["status"] == "approved"


def test_final_approver_sets_amount(client, org, auth_headers, submit_claim):
    claim = submit_claim(org.emma, 900)
    approval = pending_approval(client, auth_headers, org.emma, claim["id"])

    response = decide(client, auth_headers, org.manoj, approval["id"], status="approved", approvedAmount=850)
    assert response.status_code == 200
    claim = client.get(f"/api/claims/{claim['id']}", headers=auth_headers(org.emma)).json()
    assert claim["approvedAmount"] == 850


def test_intermediate_approver_cannot_set_amount(client, org, auth_headers, submit_claim):
    claim = submit_claim(org.emma, 8000)
    approval = pending_approval(client, auth_headers, org.emma, claim["id"])
    response = decide(client, auth_headers, org.manoj, approval["id"], status="approved", approvedAmount=10)
    assert response.status_code == 400


def test_second_decision_conflicts(client, org, auth_headers, submit_claim):
    claim = submit_claim(org.emma, 8000)
    approval = pending_approval(client, auth_headers, org.emma, claim["id"])

    assert decide(client, auth_headers, org.manoj, approval["id"], status="approved").status_code == 200
    again = decide(client, auth_headers, org.manoj, approval["id"], status="rejected", notes="changed my mind")
    assert again.status_code == 409

    claim = client.get(f"/api/claims/{claim['id']}", headers=auth_headers(org.emma)).json()
    assert claim["status"] == "submitted"
    assert claim["currentApproverId"] == org.fiona.id


def test_rejection_closes_the_claim(client, org, auth_headers, submit_claim):
    claim = submit_claim(org.emma, 8000)
    approval = pending_approval(client, auth_headers, org.emma, claim["id"])

    missing_reason = decide(client, auth_headers, org.manoj, approval["id"], status="rejected")
    assert missing_reason.status_code == 400

    response = decide(client, auth_headers, org.manoj, approval["id"], status="rejected", notes="missing receipts")
    assert response.status_code == 200
    assert response.json()["notes"] == "missing receipts"

    rejected = client.get(f"/api/claims/{claim['id']}", headers=auth_headers(org.emma)).json()
    assert rejected["status"] == "rejected"
    assert rejected["rejectedAt"] is not None
    assert rejected["approvedAmount"] is None
    assert rejected["currentApproverId"] is None


def test_only_assigned_approver_decides(client, org, auth_headers, submit_claim):
    claim = submit_claim(org.emma, 100)
    approval = pending_approval(client, auth_headers, org.emma, claim["id"])
    response = decide(client, auth_headers, org.dina, approval["id"], status="approved")
    assert response.status_code == 403


def test_notes_only_update_keeps_pending(client, org, auth_headers, submit_claim):
    claim = submit_claim(org.emma, 100)
    approval = pending_approval(client, auth_headers, org.emma, claim["id"])
    response = decide(client, auth_headers, org.manoj, approval["id"], notes="looking at it")
    assert response.status_code == 200
    assert response.json()["status"] == "pending"
    assert response.json()["notes"] == "looking at it"


def test_unknown_approval(client, org, auth_headers):
    assert decide(client, auth_headers, org.admin, 999, status="approved").status_code == 404


def test_admin_routes_unrouted_claim(client, org, auth_headers, submit_claim):
    claim = submit_claim(org.sam, 300)
    body = {"claimId": claim["id"], "approverId": org.dina.id, "approvalLevel": 1}

    denied = client.post("/api/approvals", json=body, headers=auth_headers(org.sam))
    assert denied.status_code == 403

    response = client.post("/api/approvals", json=body, headers=auth_headers(org.admin))
    assert response.status_code == 201
    assert response.json()["status"] == "pending"

    routed = client.get(f"/api/claims/{claim['id']}", headers=auth_headers(org.sam)).json()
    assert routed["currentApproverId"] == org.dina.id
    assert client.get("/api/claims/unrouted", headers=auth_headers(org.admin)).json() == []

    duplicate = client.post("/api/approvals", json=body, headers=auth_headers(org.admin))
    assert duplicate.status_code == 409

    decided = decide(client, auth_headers, org.dina, response.json()["id"], status="approved")
    assert decided.status_code == 200
    claim = client.get(f"/api/claims/{claim['id']}", headers=auth_headers(org.sam)).json()
    assert claim["status"] == "approved"


def test_pending_approval_needs_submitted_claim(client, org, auth_headers):
    draft = client.post(
        "/api/claims", json={"type": "other", "totalAmount": 10}, headers=auth_headers(org.emma),
    ).json()
    response = client.post(
        "/api/approvals",
        json={"claimId": draft["id"], "approverId": org.manoj.id},
        headers=auth_headers(org.admin),
    )
    assert response.status_code == 409
