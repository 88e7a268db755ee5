# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
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

"""Collection definitions.

Describes, per remote collection, how it is staged and which remote
actions fetch, commit, delete and reorder it.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from opsconsole.staging.protocol import StagingShape


@dataclass
class CollectionConfig:
    """Configuration for one remote-backed collection."""

    name: str
    shape: StagingShape
    id_field: str  # Field holding the entity id
    fetch_action: str  # Returns the whole collection
    data_key: str  # Key of the record list inside the fetch response data
    batch_action: str  # Commits every staged edit in one call
    delete_action: Optional[str] = None  # Deletes one entity immediately
    create_action: Optional[str] = None  # Creates one entity immediately
    reorder_action: Optional[str] = None  # Commits a full ordering of ids
    attachment_field: Optional[str] = None  # Attachment field, comma-joined URLs on the wire
    group_field: Optional[str] = None  # Field used as the upload grouping key
    search_fields: List[str] = field(default_factory=list)


COLLECTIONS: Dict[str, CollectionConfig] = {
    "orders": CollectionConfig(
        name="orders",
        shape=StagingShape.PATCH,
        id_field="orderId",
        fetch_action="getDashboardData",
        data_key="orders",
        batch_action="updateOrdersBatch",
        delete_action="deleteOrder",
        create_action="createManualOrder",
        search_fields=["orderId", "customerName", "customerPhone"],
    ),
    "catalog": CollectionConfig(
        name="catalog",
        shape=StagingShape.REPLACE,
        id_field="id",
        fetch_action="getProductsAdmin",
        data_key="products",
        batch_action="updateProductsBatch",
        delete_action="deleteProduct",
        reorder_action="reorderProducts",
        attachment_field="image",
        group_field="brand",
        search_fields=["name", "category", "brand"],
    ),
}


def get_collection_config(name: str) -> CollectionConfig:
    """Get the configuration of a collection.

    Args:
        name: Collection name

    Returns:
        Collection configuration

    Raises:
        KeyError: If the collection is unknown
    """
    if name not in COLLECTIONS:
        raise KeyError(f"Unknown collection '{name}'")
    return COLLECTIONS[name]
