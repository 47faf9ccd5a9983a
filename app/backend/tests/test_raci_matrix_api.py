from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.testclient import TestClient

if TYPE_CHECKING:
    from conftest import ProjectFixture


def _headers(oid: str = "oid-editor", email: str = "editor@test.local", display_name: str = "Editor") -> dict[str, str]:
    return {
        "X-MS-OID": oid,
        "X-MS-EMAIL": email,
        "X-MS-DISPLAY-NAME": display_name,
    }


def _create_matrix(client: TestClient, project_id: str, name: str = "Release plan") -> str:
    response = client.post(
        "/api/v1/raci-matrices",
        headers=_headers(),
        json={"project_id": project_id, "name": name, "description": "Q3"},
    )
    assert response.status_code == 201
    return response.json()["id"]


def test_me_returns_acting_user(client: TestClient) -> None:
    response = client.get("/api/v1/me", headers=_headers(email="Editor@Test.Local"))

    assert response.status_code == 200
    body = response.json()
    assert body["microsoft_oid"] == "oid-editor"
    assert body["email"] == "editor@test.local"
    assert body["status"] == "active"


def test_matrix_lifecycle_over_http(client: TestClient, raci_project: ProjectFixture) -> None:
    project_id = str(raci_project.project.id)
    alice_id = str(raci_project.alice.id)
    owner_id = str(raci_project.product_owner.id)
    actor_id = str(raci_project.actor.id)
    matrix_id = _create_matrix(client, project_id)

    listed = client.get(f"/api/v1/projects/{project_id}/raci-matrices", headers=_headers())
    assert listed.status_code == 200
    assert [item["id"] for item in listed.json()["items"]] == [matrix_id]

    for name in ("Requirements", "Implementation"):
        response = client.post(f"/api/v1/raci-matrices/{matrix_id}/tasks", headers=_headers(), json={"name": name})
        assert response.status_code == 201

    for kind, participant_id in (("team_member", alice_id), ("product_owner", owner_id)):
        response = client.post(
            f"/api/v1/raci-matrices/{matrix_id}/participants",
            headers=_headers(),
            json={"kind": kind, "id": participant_id},
        )
        assert response.status_code == 201

    response = client.put(
        f"/api/v1/raci-matrices/{matrix_id}/assignments",
        headers=_headers(),
        json={"row_order": 1, "participant": {"kind": "team_member", "id": alice_id}, "role": "R"},
    )
    assert response.status_code == 200

    response = client.put(
        f"/api/v1/raci-matrices/{matrix_id}/approver",
        headers=_headers(),
        json={"approver_id": owner_id},
    )
    assert response.status_code == 200

    view = client.get(f"/api/v1/raci-matrices/{matrix_id}", headers=_headers()).json()
    alice_key = f"team_member:{alice_id}"
    owner_key = f"product_owner:{owner_id}"
    assert [task["name"] for task in view["tasks"]] == ["Requirements", "Implementation"]
    assert [participant["key"] for participant in view["participants"]] == [alice_key, owner_key]
    assert view["grid"] == {
        "0": {alice_key: "", owner_key: ""},
        "1": {alice_key: "R", owner_key: ""},
    }
    assert view["approver"]["id"] == owner_id
    assert view["created_by_id"] == actor_id
    assert view["updated_by_id"] == actor_id

    response = client.delete(f"/api/v1/raci-matrices/{matrix_id}/participants/{alice_key}", headers=_headers())
    assert response.status_code == 200
    assert response.json()["grid"] == {"0": {owner_key: ""}, "1": {owner_key: ""}}

    response = client.patch(
        f"/api/v1/raci-matrices/{matrix_id}/tasks/0",
        headers=_headers(),
        json={"description": "Gather scope"},
    )
    assert response.status_code == 200
    assert response.json()["tasks"][0]["description"] == "Gather scope"

    response = client.delete(f"/api/v1/raci-matrices/{matrix_id}/tasks/0", headers=_headers())
    assert response.status_code == 200
    assert [task["row_order"] for task in response.json()["tasks"]] == [1]

    response = client.delete(f"/api/v1/raci-matrices/{matrix_id}", headers=_headers())
    assert response.status_code == 204

    response = client.post(f"/api/v1/raci-matrices/{matrix_id}/tasks", headers=_headers(), json={"name": "Late"})
    assert response.status_code == 404


def test_error_statuses(client: TestClient, raci_project: ProjectFixture) -> None:
    matrix_id = _create_matrix(client, str(raci_project.project.id))
    carol_id = str(raci_project.carol.id)

    response = client.post(
        f"/api/v1/raci-matrices/{matrix_id}/participants",
        headers=_headers(),
        json={"kind": "team_member", "id": carol_id},
    )
    assert response.status_code == 422

    response = client.delete(f"/api/v1/raci-matrices/{matrix_id}/participants/not-a-key", headers=_headers())
    assert response.status_code == 422

    response = client.delete(
        f"/api/v1/raci-matrices/{matrix_id}/participants/team_member:{carol_id}",
        headers=_headers(),
    )
    assert response.status_code == 404

    response = client.post(
        f"/api/v1/raci-matrices/{matrix_id}/tasks",
        headers=_headers(),
        json={"name": "x" * 51},
    )
    assert response.status_code == 422

    response = client.put(
        f"/api/v1/raci-matrices/{matrix_id}/approver",
        headers=_headers(),
        json={"approver_id": str(raci_project.developer.id)},
    )
    assert response.status_code == 422

    response = client.get(f"/api/v1/raci-matrices/{raci_project.project.id}", headers=_headers())
    assert response.status_code == 404


def test_row_order_beyond_storage_range_is_rejected(client: TestClient, raci_project: ProjectFixture) -> None:
    matrix_id = _create_matrix(client, str(raci_project.project.id))
    too_large = 2**31

    response = client.post(
        f"/api/v1/raci-matrices/{matrix_id}/tasks",
        headers=_headers(),
        json={"name": "Overflow", "row_order": too_large},
    )
    assert response.status_code == 422

    response = client.patch(
        f"/api/v1/raci-matrices/{matrix_id}/tasks/{too_large}",
        headers=_headers(),
        json={"name": "Overflow"},
    )
    assert response.status_code == 422

    response = client.delete(f"/api/v1/raci-matrices/{matrix_id}/tasks/{too_large}", headers=_headers())
    assert response.status_code == 422

    response = client.put(
        f"/api/v1/raci-matrices/{matrix_id}/assignments",
        headers=_headers(),
        json={
            "row_order": too_large,
            "participant": {"kind": "team_member", "id": str(raci_project.alice.id)},
            "role": "R",
        },
    )
    assert response.status_code == 422
