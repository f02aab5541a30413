# mastery/schemas/leads.py
from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate, validates

PHONE_PATTERN = r'^[\d\s\-\+\(\)]*$'


class ContactSubmissionSchema(Schema):
    first_name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    last_name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
        error_messages={"invalid": "L'adresse email est invalide", "required": "L'adresse email est requise"},
    )
    phone_number = fields.Str(
        load_default="",
        allow_none=True,
        validate=validate.Regexp(PHONE_PATTERN, error="Le numéro de téléphone est invalide"),
    )

    class Meta:
        unknown = EXCLUDE

    @validates("first_name")
    def _first_name_not_blank(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("Le prénom est invalide (1-100 caractères requis)")

    @validates("last_name")
    def _last_name_not_blank(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("Le nom est invalide (1-100 caractères requis)")

    @validates("phone_number")
    def _phone_length(self, value, **kwargs):
        if value and len(value) > 20:
            raise ValidationError("Le numéro de téléphone est invalide")


class ContactMessageSchema(Schema):
    name = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=100, error="Le nom est invalide (1-100 caractères requis)"),
    )
    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
        error_messages={"invalid": "L'adresse email est invalide", "required": "L'adresse email est requise"},
    )
    message = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=250, error="Le message est invalide (1-250 caractères requis)"),
    )

    class Meta:
        unknown = EXCLUDE

    @validates("name")
    def _name_not_blank(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("Le nom est invalide (1-100 caractères requis)")

    @validates("message")
    def _message_not_blank(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("Le message est invalide (1-250 caractères requis)")
