"""File (resource) endpoints."""

from __future__ import annotations

from flask import Blueprint, request, send_file

from cloudstorage.api.deps import json_body, json_response, services, timing
from cloudstorage.api.security import current_actor, optional_auth, require_auth
from cloudstorage.core.errors import APIError
from cloudstorage.schemas import (
    FileListQuerySchema,
    FileSchema,
    FileUpdateSchema,
    FileUploadFormSchema,
    ShareCreateSchema,
    ShareSchema,
    build_pagination,
)
from cloudstorage.services.files.dto import FileUploadIn

bp = Blueprint("files", __name__)

list_query_schema = FileListQuerySchema()
upload_form_schema = FileUploadFormSchema()
update_schema = FileUpdateSchema()
share_create_schema = ShareCreateSchema()
file_schema = FileSchema()
file_list_schema = FileSchema(many=True)
share_schema = ShareSchema()


@bp.get("")
@optional_auth
@timing
def list_files():
    """List resources visible to the caller (public ones when anonymous)."""

    query = list_query_schema.load(request.args)
    page = services().files.list_files(current_actor(), **query)
    return json_response(
        {"data": {"files": file_list_schema.dump(page.items), "pagination": build_pagination(page)}}
    )


@bp.post("")
@require_auth
@timing
def upload_file():
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise APIError(
            "No file uploaded.",
            status_code=400,
            code="validation_error",
            details={"errors": {"file": ["Missing data for required field."]}},
        )
    form = upload_form_schema.load(request.form.to_dict())
    out = services().files.upload(
        current_actor(),
        FileUploadIn(
            filename=upload.filename,
            content_type=upload.mimetype or "application/octet-stream",
            stream=upload.stream,
            description=form["description"],
            is_public=form["is_public"],
            tags=form["tags"],
        ),
    )
    return json_response({"data": {"file": file_schema.dump(out)}}, status=201)


@bp.get("/<int:file_id>")
@optional_auth
@timing
def get_file(file_id: int):
    out = services().files.get_file(current_actor(), file_id)
    return json_response({"data": {"file": file_schema.dump(out)}})


@bp.get("/<int:file_id>/download")
@optional_auth
@timing
def download_file(file_id: int):
    blob = services().files.download(current_actor(), file_id)
    return send_file(
        blob.stream,
        mimetype=blob.content_type,
        as_attachment=True,
        download_name=blob.name,
    )


@bp.put("/<int:file_id>")
@require_auth
@timing
def update_file(file_id: int):
    changes = update_schema.load(json_body())
    out = services().files.update_file(current_actor(), file_id, changes)
    return json_response({"data": {"file": file_schema.dump(out)}})


@bp.delete("/<int:file_id>")
@require_auth
@timing
def delete_file(file_id: int):
    services().files.delete_file(current_actor(), file_id)
    return json_response({"data": {"success": True}})


@bp.post("/<int:file_id>/shares")
@require_auth
@timing
def share_file(file_id: int):
    data = share_create_schema.load(json_body())
    grant = services().files.share(current_actor(), file_id, data["email"], data["permission"])
    return json_response({"data": {"share": share_schema.dump(grant)}}, status=201)


@bp.delete("/<int:file_id>/shares/<int:user_id>")
@require_auth
@timing
def revoke_share(file_id: int, user_id: int):
    services().files.unshare(current_actor(), file_id, user_id)
    return "", 204
