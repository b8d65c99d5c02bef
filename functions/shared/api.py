# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================


from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class SignupRequest:
    """Body of POST /api/auth/signup."""

    username: str
    password: str
    fullname: str


@dataclass
class LoginRequest:
    """Body of POST /api/auth/login."""

    username: str
    password: str


@dataclass
class CustomerRequest:
    name: str


@dataclass
class CreateUserRequest:
    """Body of POST /api/users. Accounts created here carry no credentials."""

    email: Optional[str] = None
    name: Optional[str] = None


@dataclass
class PublicUser:
    """A user as shown to callers: never includes the password hash."""

    user_id: str
    username: str
    fullname: str


@dataclass
class UserFilter:
    """Search filter for the user collection."""

    txt: Optional[str] = None
    min_balance: Optional[float] = None


@dataclass
class UpdatableUserFields:
    """The only fields `update` writes back to a user document."""

    id: str
    fullname: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    img_url: Optional[str] = None
    count: Any = None
    # Only written when present on the input.
    is_owner: Optional[bool] = None


@dataclass
class NewUserFields:
    """The only fields `add` accepts. The counter always starts at zero."""

    username: str
    password: str
    fullname: str
    img_url: Optional[str] = None
    is_owner: Optional[bool] = None
