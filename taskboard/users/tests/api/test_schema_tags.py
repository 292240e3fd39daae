from drf_spectacular.generators import SchemaGenerator

from taskboard.users.models import User


def _first_tags(paths, candidates):
    tags = {}
    for path in candidates:
        if path in paths:
            first_op = next(iter(paths[path].values()))
            tags[path] = first_op.get("tags")
    return tags


def test_schema_tag_grouping(db):
    schema = SchemaGenerator().get_schema(request=None, public=True)
    paths = schema["paths"]
    login = next(p for p in paths if p.startswith("/api/auth/login"))
    tasks = next(p for p in paths if p.startswith("/api/tasks") and "{" not in p)
    users = next(p for p in paths if p.startswith("/api/users") and "{" not in p)

    tags = _first_tags(paths, [login, tasks, users])
    assert tags[login] == ["Authentication"]
    assert tags[tasks] == ["Tasks"]
    assert tags[users] == ["Users"]


def test_schema_endpoint_requires_staff(api_client, db):
    assert api_client.get("/api/schema/").status_code == 401

    staff = User.objects.create_superuser(
        email="staff@example.com", password="x", name="Staff"
    )
    api_client.force_authenticate(user=staff)
    assert api_client.get("/api/schema/").status_code == 200
