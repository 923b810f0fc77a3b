"""
Flask route handlers for the REST API.

The routes only translate JSON to AccessControl calls and back; every
consistency rule lives in AccessControl.
"""

import sys
import traceback

from flask import jsonify, request

from clinic_access.errors import AlreadyExists, InvalidCatalogKey, InvalidEntity, NotFound
from clinic_access.rbac import AccessControl
from clinic_access.reports import access_review, dangling_frame


def _role_json(access: AccessControl, role):
    data = role.to_dict()
    data["staff_count"] = access.role_staff_count(role.id)
    return data


def _json_body():
    """Return the request's JSON object, or None when it is not one."""
    if not request.is_json:
        return None
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _bad_body():
    return jsonify({"error": "Content-Type must be application/json with an object body"}), 400


def register_routes(app, access: AccessControl):
    """Register all API routes on the Flask *app*."""

    # ── Health / info ────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": "Clinic Access API",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "catalog": "/api/catalog",
                "roles": "/api/roles",
                "groups": "/api/groups",
                "users": "/api/users",
                "reports": "/api/reports/access-review",
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({
            "status": "healthy",
            "counts": {
                "roles": len(access.list_roles()),
                "groups": len(access.list_groups()),
                "users": len(access.list_users()),
            },
            "dangling_references": len(access.dangling_references()),
        }), 200

    @app.route("/api/catalog", methods=["GET"])
    def get_catalog():
        return jsonify(access.catalog()), 200

    # ── Roles ────────────────────────────────────────────────────────

    @app.route("/api/roles", methods=["GET"])
    def list_roles():
        return jsonify({"roles": [_role_json(access, r) for r in access.list_roles()]}), 200

    @app.route("/api/roles", methods=["POST"])
    def create_role():
        data = _json_body()
        if data is None:
            return _bad_body()
        role = access.create_role(
            title=data.get("title"),
            department=data.get("department", ""),
            description=data.get("description", ""),
            salary_range=data.get("salary_range", ""),
            matrix=data.get("permissions"),
            role_id=data.get("id"),
        )
        return jsonify(_role_json(access, role)), 201

    @app.route("/api/roles/<role_id>", methods=["GET"])
    def get_role(role_id):
        return jsonify(_role_json(access, access.get_role(role_id))), 200

    @app.route("/api/roles/<role_id>", methods=["PATCH"])
    def update_role(role_id):
        data = _json_body()
        if data is None:
            return _bad_body()
        if "permissions" in data:
            data["matrix"] = data.pop("permissions")
        role = access.update_role(role_id, **data)
        return jsonify(_role_json(access, role)), 200

    @app.route("/api/roles/<role_id>/permissions", methods=["PUT"])
    def set_role_permissions(role_id):
        data = _json_body()
        if data is None:
            return _bad_body()
        role = access.set_role_permissions(role_id, data.get("permissions", data))
        return jsonify(_role_json(access, role)), 200

    @app.route("/api/roles/<role_id>", methods=["DELETE"])
    def delete_role(role_id):
        return jsonify({"success": True, "deleted": access.delete_role(role_id)}), 200

    # ── Groups ───────────────────────────────────────────────────────

    def _save_group(group_id, data, create_only=False):
        # an absent role_ids keeps the group's current roles
        return access.save_group(
            group_id,
            data.get("role_ids"),
            name=data.get("name"),
            description=data.get("description"),
            color=data.get("color"),
            member_user_ids=data.get("member_user_ids"),
            create_only=create_only,
        )

    @app.route("/api/groups", methods=["GET"])
    def list_groups():
        return jsonify({"groups": [g.to_dict() for g in access.list_groups()]}), 200

    @app.route("/api/groups", methods=["POST"])
    def create_group():
        data = _json_body()
        if data is None:
            return _bad_body()
        group = _save_group(data.get("id"), data, create_only=True)
        return jsonify(group.to_dict()), 201

    @app.route("/api/groups/<group_id>", methods=["GET"])
    def get_group(group_id):
        return jsonify(access.get_group(group_id).to_dict()), 200

    @app.route("/api/groups/<group_id>", methods=["PUT"])
    def save_group(group_id):
        data = _json_body()
        if data is None:
            return _bad_body()
        return jsonify(_save_group(group_id, data).to_dict()), 200

    @app.route("/api/groups/<group_id>", methods=["DELETE"])
    def delete_group(group_id):
        return jsonify({"success": True, "deleted": access.delete_group(group_id)}), 200

    @app.route("/api/groups/<group_id>/permissions", methods=["GET"])
    def group_permissions(group_id):
        matrix = access.aggregate_group_permissions(group_id)
        return jsonify({"group_id": group_id, "permissions": matrix.granted()}), 200

    @app.route("/api/groups/<group_id>/members", methods=["PUT"])
    def update_group_members(group_id):
        data = _json_body()
        if data is None:
            return _bad_body()
        members = access.update_group_members(group_id, data.get("user_ids", []))
        return jsonify({"group_id": group_id, "user_ids": members}), 200

    # ── Users ────────────────────────────────────────────────────────

    @app.route("/api/users", methods=["GET"])
    def list_users():
        users = access.list_users(
            role_id=request.args.get("role_id"),
            group_id=request.args.get("group_id"),
            search=request.args.get("search"),
            status=request.args.get("status"),
        )
        return jsonify({"users": [u.to_dict() for u in users]}), 200

    @app.route("/api/users", methods=["POST"])
    def create_user():
        data = _json_body()
        if data is None:
            return _bad_body()
        user = access.create_user(
            name=data.get("name"),
            email=data.get("email", ""),
            phone=data.get("phone", ""),
            department=data.get("department", ""),
            status=data.get("status", "active"),
            start_date=data.get("start_date"),
            schedule=data.get("schedule", ""),
            role_id=data.get("role_id"),
            group_ids=data.get("group_ids", []),
            user_id=data.get("id"),
        )
        return jsonify(user.to_dict()), 201

    @app.route("/api/users/<user_id>", methods=["GET"])
    def get_user(user_id):
        return jsonify(access.get_user(user_id).to_dict()), 200

    @app.route("/api/users/<user_id>", methods=["PATCH"])
    def update_user(user_id):
        data = _json_body()
        if data is None:
            return _bad_body()
        return jsonify(access.update_user(user_id, **data).to_dict()), 200

    @app.route("/api/users/<user_id>", methods=["DELETE"])
    def delete_user(user_id):
        return jsonify({"success": True, "deleted": access.delete_user(user_id)}), 200

    @app.route("/api/users/<user_id>/permissions", methods=["GET"])
    def user_permissions(user_id):
        matrix = access.compute_effective_user_permissions(user_id)
        return jsonify({"user_id": user_id, "permissions": matrix.granted()}), 200

    # ── Reports ──────────────────────────────────────────────────────

    @app.route("/api/reports/access-review", methods=["GET"])
    def get_access_review():
        df = access_review(access)
        df = df.astype(object).where(df.notna(), None)
        return jsonify({
            "row_count": len(df),
            "columns": df.columns.tolist(),
            "data": df.to_dict(orient="records"),
        }), 200

    @app.route("/api/reports/dangling", methods=["GET"])
    def get_dangling():
        df = dangling_frame(access)
        return jsonify({"row_count": len(df), "data": df.to_dict(orient="records")}), 200

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(InvalidCatalogKey)
    def invalid_catalog_key(e):
        return jsonify({"error": "Invalid catalog key", "details": str(e)}), 400

    @app.errorhandler(AlreadyExists)
    def already_exists(e):
        return jsonify({"error": f"{e.kind} already exists", "details": str(e)}), 409

    @app.errorhandler(InvalidEntity)
    def invalid_entity(e):
        return jsonify({"error": "Validation failed", "details": str(e)}), 400

    @app.errorhandler(NotFound)
    def entity_not_found(e):
        return jsonify({"error": f"{e.kind} not found", "details": str(e)}), 404

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found", "message": str(e)}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "message": str(e)}), 405

    @app.errorhandler(500)
    def internal_error(e):
        print(f"[ERROR] Unhandled error: {e}", file=sys.stderr)
        traceback.print_exc()
        return jsonify({"error": "Internal server error", "message": str(e)}), 500
