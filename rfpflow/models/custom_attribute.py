import enum
from sqlalchemy import Column, String, Text, Boolean, ForeignKey, Integer, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import UUIDBaseModel, enum_column_type


class AttributeType(str, enum.Enum):
    TEXT = "text"
    LONG_TEXT = "long_text"
    NUMBER = "number"
    DATE = "date"
    CHECKBOX = "checkbox"
    DROPDOWN = "dropdown"
    LABEL = "label"
    CHECKLIST = "checklist"
    LINK = "link"
    MEMBER = "member"
    VOTE = "vote"
    PROGRESS = "progress"
    RATING = "rating"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    CREATED_BY = "created_by"
    BUTTON = "button"
    CUSTOM_ID = "custom_id"


class CustomAttribute(UUIDBaseModel):
    """Organization-defined extra field for projects"""
    __tablename__ = "custom_attributes"
    __table_args__ = (UniqueConstraint("organization_id", "name", name="uq_custom_attributes_org_name"),)

    organization_id = Column(String, ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    label = Column(String(100), nullable=False)
    type = Column(enum_column_type(AttributeType, "attribute_type"), nullable=False)
    description = Column(Text)
    is_required = Column(Boolean, default=False, nullable=False)
    default_value = Column(String(500))
    options = Column(JSON, default=list)
    validation_rules = Column(JSON, default=dict)
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(String, ForeignKey("users.id"), nullable=True)

    created_by_user = relationship("User")
    values = relationship("ProjectAttributeValue", back_populates="attribute")

    def __repr__(self):
        return f"<CustomAttribute(name='{self.name}', type='{self.type}')>"


class ProjectAttributeValue(UUIDBaseModel):
    """Value of a custom attribute on one project"""
    __tablename__ = "project_attribute_values"
    __table_args__ = (UniqueConstraint("project_id", "attribute_id", name="uq_project_attribute"),)

    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    attribute_id = Column(String, ForeignKey("custom_attributes.id"), nullable=False, index=True)
    value = Column(Text)

    project = relationship("Project", back_populates="attribute_values")
    attribute = relationship("CustomAttribute", back_populates="values")
