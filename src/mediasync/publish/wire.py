"""Protobuf wire format of discovery events.

The schema is shared with the identification service and must stay
field-for-field identical to::

    syntax = "proto3";
    package api;

    message Media {
      enum MediaType { TV = 0; MOVIE = 1; }
      enum SourceType { HTTP = 0; TORRENT = 1; FILE = 2; }
      enum MetadataType { NONE = 0; TVDB = 1; TMDB = 2; IMDB = 3; }
      string id = 1;
      string name = 2;
      int32 creator = 3;
      string creator_id = 4;
      MediaType type = 5;
      SourceType source = 6;
      string source_uri = 7;
      string metadata_id = 8;
      MetadataType metadata = 9;
      int32 status = 10;
    }

    message IdentifyNewFile {
      string created_at = 1;
      Media media = 2;
      string key = 3;
      int64 episode = 4;
      int64 season = 5;
    }

Never renumber fields; add new ones with new numbers.
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import Message

from mediasync.media import DiscoveryEvent, MediaKind, MetadataProvider, SourceType

NEW_FILE_ROUTING_KEY = "v1.identify.newfile"

_Field = descriptor_pb2.FieldDescriptorProto


def _build_schema() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="api/identify.proto",
        package="api",
        syntax="proto3",
    )

    media = file_proto.message_type.add(name="Media")
    for enum_name, members in (
        ("MediaType", MediaKind),
        ("SourceType", SourceType),
        ("MetadataType", MetadataProvider),
    ):
        enum_proto = media.enum_type.add(name=enum_name)
        for member in members:
            enum_proto.value.add(name=member.name, number=int(member))

    media_fields = [
        ("id", 1, _Field.TYPE_STRING, None),
        ("name", 2, _Field.TYPE_STRING, None),
        ("creator", 3, _Field.TYPE_INT32, None),
        ("creator_id", 4, _Field.TYPE_STRING, None),
        ("type", 5, _Field.TYPE_ENUM, ".api.Media.MediaType"),
        ("source", 6, _Field.TYPE_ENUM, ".api.Media.SourceType"),
        ("source_uri", 7, _Field.TYPE_STRING, None),
        ("metadata_id", 8, _Field.TYPE_STRING, None),
        ("metadata", 9, _Field.TYPE_ENUM, ".api.Media.MetadataType"),
        ("status", 10, _Field.TYPE_INT32, None),
    ]
    new_file_fields = [
        ("created_at", 1, _Field.TYPE_STRING, None),
        ("media", 2, _Field.TYPE_MESSAGE, ".api.Media"),
        ("key", 3, _Field.TYPE_STRING, None),
        ("episode", 4, _Field.TYPE_INT64, None),
        ("season", 5, _Field.TYPE_INT64, None),
    ]

    new_file = file_proto.message_type.add(name="IdentifyNewFile")
    for message_proto, fields in ((media, media_fields), (new_file, new_file_fields)):
        for name, number, field_type, type_name in fields:
            field_proto = message_proto.field.add(
                name=name,
                number=number,
                type=field_type,
                label=_Field.LABEL_OPTIONAL,
            )
            if type_name:
                field_proto.type_name = type_name

    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_schema().SerializeToString())

Media = message_factory.GetMessageClass(_pool.FindMessageTypeByName("api.Media"))
IdentifyNewFile = message_factory.GetMessageClass(
    _pool.FindMessageTypeByName("api.IdentifyNewFile"),
)


def to_message(event: DiscoveryEvent) -> Message:
    message = IdentifyNewFile(
        created_at=event.created_at.isoformat(timespec="seconds"),
        key=event.object_key,
        episode=event.episode,
        season=event.season,
    )
    message.media.id = event.media_id
    message.media.type = int(event.media_kind)
    return message


def encode_discovery_event(event: DiscoveryEvent) -> bytes:
    """Serialize a discovery event for the identification service."""
    return to_message(event).SerializeToString()


def decode_discovery_event(payload: bytes) -> Message:
    """Parse an IdentifyNewFile message.

    Raises:
        google.protobuf.message.DecodeError: If the payload is not a valid message.
    """
    message = IdentifyNewFile()
    message.ParseFromString(payload)
    return message


__all__ = [
    "NEW_FILE_ROUTING_KEY",
    "IdentifyNewFile",
    "Media",
    "decode_discovery_event",
    "encode_discovery_event",
]
