# FilePath: "/colloquium/api/schemas.py"
# Project: Colloquium Bot Framework
# Description: Request bodies for the admin and bot API routes.
#              Accept camelCase (wire) and snake_case (Python) field names.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ===== Admin =====

class InstallBotRequest(ApiModel):
    # YAML text or a mapping
    config: Optional[Union[str, Dict[str, Any]]] = None
    permissions: Optional[List[str]] = None


class UpdateConfigRequest(ApiModel):
    config: Union[str, Dict[str, Any]]


class SetEnabledRequest(ApiModel):
    enabled: bool


class ExecuteCommandRequest(ApiModel):
    command: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    manuscript_id: str
    user_id: str = "admin"
    user_role: Optional[str] = "ADMIN"
    conversation_id: Optional[str] = None
    apply_actions: bool = True


# ===== Bot token =====

class InvokeBotRequest(ApiModel):
    bot_id: str
    command: str
    parameters: Dict[str, Any] = Field(default_factory=dict)


class StorageValueRequest(ApiModel):
    value: Any = None


class UploadFileRequest(ApiModel):
    filename: str = Field(min_length=1)
    content: str
    file_type: str = "SOURCE"
    mimetype: str = "application/octet-stream"


class AssignReviewerRequest(ApiModel):
    reviewer_id: str
    status: str = "PENDING"
    due_date: Optional[str] = None
