"""Built-in metadata so the editor has completions without a live account."""

from __future__ import annotations

from typing import Mapping, Sequence

from .sqlintel.metadata import DataExtension, DataExtensionField, Folder, StaticMetadataProvider

# name -> ((field, type), ...)
SYSTEM_DATA_VIEWS: Mapping[str, Sequence[tuple[str, str]]] = {
    "_Subscribers": (
        ("SubscriberID", "Number"),
        ("SubscriberKey", "Text"),
        ("EmailAddress", "EmailAddress"),
        ("Status", "Text"),
        ("DateJoined", "Date"),
    ),
    "_Sent": (
        ("JobID", "Number"),
        ("SubscriberID", "Number"),
        ("SubscriberKey", "Text"),
        ("EventDate", "Date"),
    ),
    "_Open": (
        ("JobID", "Number"),
        ("SubscriberID", "Number"),
        ("SubscriberKey", "Text"),
        ("EventDate", "Date"),
        ("IsUnique", "Boolean"),
    ),
    "_Click": (
        ("JobID", "Number"),
        ("SubscriberID", "Number"),
        ("SubscriberKey", "Text"),
        ("EventDate", "Date"),
        ("URL", "Text"),
    ),
    "_Job": (
        ("JobID", "Number"),
        ("EmailName", "Text"),
        ("DeliveredTime", "Date"),
        ("TriggererSendDefinitionObjectID", "Text"),
    ),
}

DEMO_FOLDERS: tuple[Folder, ...] = (
    Folder(id="1", name="Data Extensions"),
    Folder(id="2", name="Shared"),
    Folder(id="3", name="Campaigns", parent_id="2"),
)

DEMO_DATA_EXTENSIONS: tuple[DataExtension, ...] = (
    DataExtension(
        id="de-1",
        name="Master Subscribers",
        customer_key="master_subscribers",
        folder_id="1",
        fields=(
            DataExtensionField("SubscriberKey", "Text", 254, is_primary_key=True),
            DataExtensionField("EmailAddress", "EmailAddress", 254),
            DataExtensionField("FirstName", "Text", 50),
            DataExtensionField("Region", "Text", 20),
        ),
    ),
    DataExtension(
        id="de-2",
        name="Purchases",
        customer_key="purchases",
        folder_id="1",
        fields=(
            DataExtensionField("OrderID", "Text", 36, is_primary_key=True),
            DataExtensionField("SubscriberKey", "Text", 254),
            DataExtensionField("Amount", "Decimal"),
            DataExtensionField("PurchaseDate", "Date"),
        ),
    ),
    DataExtension(
        id="de-3",
        name="Campaign Members",
        customer_key="campaign_members",
        folder_id="3",
        fields=(
            DataExtensionField("ContactKey", "Text", 254),
            DataExtensionField("CampaignName", "Text", 100),
        ),
    ),
)


def system_data_views() -> tuple[DataExtension, ...]:
    return tuple(
        DataExtension(
            id=f"sys-{name.lower()}",
            name=name,
            customer_key=name,
            fields=tuple(DataExtensionField(field_name, field_type) for field_name, field_type in fields),
        )
        for name, fields in SYSTEM_DATA_VIEWS.items()
    )


def demo_metadata_provider() -> StaticMetadataProvider:
    """Provider seeded with system data views plus a few sample Data Extensions."""

    return StaticMetadataProvider((*system_data_views(), *DEMO_DATA_EXTENSIONS), DEMO_FOLDERS)


__all__ = [
    "DEMO_DATA_EXTENSIONS",
    "DEMO_FOLDERS",
    "SYSTEM_DATA_VIEWS",
    "demo_metadata_provider",
    "system_data_views",
]
