def group_tags(result, generator, request, public):
    """Normalize tags across the schema so each API area gets a single tag."""
    patterns = [
        (lambda p: p.startswith("/api/auth"), "Authentication"),
        (lambda p: p.startswith("/api/tasks"), "Tasks"),
        (lambda p: p.startswith("/api/users"), "Users"),
        (lambda p: p == "/api/schema/", "Meta"),
    ]
    for path, operations in result.get("paths", {}).items():
        tag = None
        for pred, name in patterns:
            if pred(path):
                tag = name
                break
        if tag is None:
            continue
        for op in operations.values():
            op["tags"] = [tag]
    return result
