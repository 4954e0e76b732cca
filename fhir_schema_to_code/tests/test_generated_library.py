"""
Behavioural tests of a generated library.

Each test generates the fixture schemas under its own root package and imports
the result.
"""

from __future__ import annotations

import importlib
import importlib.util
import io
import json
import unittest

import pytest

PATIENT_JSON = {
    "resourceType": "Patient",
    "id": "example",
    "active": True,
    "name": [{"family": "Chalmers", "given": ["Peter", "James"]}],
    "gender": "male",
    "deceasedBoolean": False,
    "contact": [{"name": {"family": "du Marché"}}],
}


def load(root, module, class_name):
    return getattr(importlib.import_module(f"{root}.{module}"), class_name)


@pytest.fixture
def patient_class(generated_library):
    root, _ = generated_library
    return load(root, "resource.patient", "FHIRPatient")


@pytest.fixture
def organization_class(generated_library):
    root, _ = generated_library
    return load(root, "resource.organization", "FHIROrganization")


class TestJson:
    def test_round_trip(self, patient_class):
        patient = patient_class.from_json(PATIENT_JSON)
        assert patient.to_json() == PATIENT_JSON

    def test_survives_json_text(self, patient_class):
        text = json.dumps(patient_class.from_json(PATIENT_JSON).to_json())
        assert patient_class.from_json(json.loads(text)).to_json() == PATIENT_JSON

    def test_empty_values_are_omitted(self, patient_class):
        patient = patient_class()
        patient.set_active(None)
        assert patient.to_json() == {"resourceType": "Patient"}

    def test_accessors(self, patient_class, generated_library):
        root, _ = generated_library
        human_name_class = load(root, "element.human_name", "FHIRHumanName")

        patient = patient_class.from_json(PATIENT_JSON)
        assert isinstance(patient.name[0], human_name_class)
        assert patient.get_name()[0].family.value.value == "Chalmers"
        assert patient.gender.value.value == "male"
        assert patient.get_resource_type() == "Patient"
        assert patient.IS_TOP_LEVEL_RESOURCE

    def test_setters_wrap_plain_values(self, patient_class):
        patient = patient_class()
        patient.active = "true"
        patient.add_name({"family": "Smith"}).add_name({"given": ["Ann"]})
        assert patient.to_json() == {
            "resourceType": "Patient",
            "active": True,
            "name": [{"family": "Smith"}, {"given": ["Ann"]}],
        }

    def test_scalar_for_complex_without_value(self, patient_class):
        with pytest.raises(TypeError, match="FHIRHumanName"):
            patient_class().add_name("Smith")


class TestXml:
    def test_round_trip(self, patient_class):
        patient = patient_class.from_json(PATIENT_JSON)
        restored = patient_class.from_xml(patient.to_xml_string())
        assert restored.to_json() == PATIENT_JSON

    def test_document_shape(self, patient_class):
        xml = patient_class.from_json(PATIENT_JSON).to_xml_string()
        assert xml.startswith('<Patient xmlns="http://hl7.org/fhir">')
        assert '<active value="true" />' in xml
        assert '<deceasedBoolean value="false" />' in xml
        # Children follow declaration order, ancestors first
        assert xml.index("<id ") < xml.index("<active ") < xml.index("<name>") < xml.index("<contact>")

    def test_parse_from_bytes(self, patient_class):
        data = b'<Patient xmlns="http://hl7.org/fhir"><id value="b1"/><gender value="female"/></Patient>'
        patient = patient_class.from_xml(data)
        assert patient.to_json() == {"resourceType": "Patient", "id": "b1", "gender": "female"}

    def test_unknown_elements_are_ignored(self, patient_class):
        patient = patient_class.from_xml('<Patient xmlns="http://hl7.org/fhir"><nickname value="x"/></Patient>')
        assert patient.to_json() == {"resourceType": "Patient"}

    def test_narrative(self, patient_class):
        data = '<Patient xmlns="http://hl7.org/fhir"><text><div xmlns="http://www.w3.org/1999/xhtml">Hello <b>there</b></div></text></Patient>'
        patient = patient_class.from_xml(data)
        div = patient.text.div
        assert "Hello" in div and "there" in div and "http://www.w3.org/1999/xhtml" in div
        restored = patient_class.from_xml(patient.to_xml_string())
        assert "there" in restored.text.div

    def test_entities_are_rejected(self, patient_class):
        data = '<!DOCTYPE p [<!ENTITY e "x">]><Patient xmlns="http://hl7.org/fhir"><id value="&e;"/></Patient>'
        with pytest.raises(Exception) as exc_info:
            patient_class.from_xml(data)
        assert type(exc_info.value).__module__.startswith("defusedxml")


class TestComments:
    XML = '<Patient xmlns="http://hl7.org/fhir"><!-- first --><active value="true"/><!-- second --></Patient>'

    def test_comments_are_kept(self, patient_class):
        patient = patient_class.from_xml(self.XML)
        assert patient.get_fhir_comments() == ["first", "second"]
        assert patient.to_json()["fhir_comments"] == ["first", "second"]
        assert "<!-- first -->" in patient.to_xml_string() or "<!--first-->" in patient.to_xml_string()

    def test_comments_can_be_dropped(self, patient_class):
        patient = patient_class.from_xml(self.XML, {"remove_comments": True})
        assert patient.get_fhir_comments() == []

    def test_comments_from_json(self, patient_class):
        patient = patient_class.from_json({"resourceType": "Patient", "fhir_comments": ["note"]})
        assert patient.get_fhir_comments() == ["note"]


class TestChoice:
    def test_first_present_member_is_serialized(self, patient_class):
        patient = patient_class()
        patient.set_deceased_boolean(True)
        patient.set_deceased_string("2015-02-07")
        data = patient.to_json()
        assert data["deceasedBoolean"] is True
        assert "deceasedString" not in data
        assert "deceasedString" not in patient.to_xml_string()

    def test_validation_flags_both_members(self, patient_class):
        patient = patient_class()
        patient.set_deceased_boolean(True)
        assert "deceasedBoolean" not in patient.validate()
        patient.set_deceased_string("2015-02-07")
        errors = patient.validate()
        assert "deceasedBoolean" in errors
        assert "deceasedString" in errors["deceasedBoolean"][0]


class TestValidation:
    def test_required_field(self, organization_class):
        errors = organization_class().validate()
        assert list(errors) == ["name"]
        organization = organization_class({"resourceType": "Organization", "name": "Acme"})
        assert organization.validate() == {}

    def test_max_occurs(self, organization_class):
        organization = organization_class({"name": "Acme", "alias": ["a", "b", "c"]})
        assert "alias" in organization.validate()

    def test_child_errors_are_prefixed(self, patient_class):
        patient = patient_class({"text": {}})
        assert "text.div" in patient.validate()

    def test_enumeration_values(self, generated_library):
        root, _ = generated_library
        gender_list = load(root, "code.administrative_gender_list", "FHIRAdministrativeGenderList")
        assert gender_list.allowed_values() == ("male", "female", "other", "unknown")
        assert gender_list.VALUE_FEMALE == "female"
        assert gender_list("female").validate() == {}
        assert not gender_list("robot").is_allowed()
        assert "value" in gender_list("robot").validate()

    def test_primitive_pattern(self, generated_library):
        root, _ = generated_library
        string_primitive = load(root, "primitive.string_primitive", "FHIRStringPrimitive")
        assert string_primitive("ok").validate() == {}
        assert "value" in string_primitive("").validate()

    def test_native_coercion(self, generated_library):
        root, _ = generated_library
        integer_primitive = load(root, "primitive.integer_primitive", "FHIRIntegerPrimitive")
        boolean_primitive = load(root, "primitive.boolean_primitive", "FHIRBooleanPrimitive")
        assert integer_primitive("42").value == 42
        assert boolean_primitive("false").value is False
        assert str(boolean_primitive(True)) == "true"


class TestContainer:
    CONTAINED = {
        "resourceType": "Patient",
        "contained": [{"resourceType": "Organization", "name": "Acme"}],
    }

    def test_json_round_trip(self, patient_class):
        patient = patient_class.from_json(self.CONTAINED)
        assert patient.to_json() == self.CONTAINED
        assert patient.contained[0].get_contained().get_resource_type() == "Organization"

    def test_xml_round_trip(self, patient_class):
        patient = patient_class.from_json(self.CONTAINED)
        xml = patient.to_xml_string()
        assert "<contained><Organization>" in xml
        assert patient_class.from_xml(xml).to_json() == self.CONTAINED

    def test_resource_instances_are_wrapped(self, patient_class, organization_class):
        patient = patient_class()
        patient.add_contained(organization_class({"name": "Acme"}))
        assert patient.to_json()["contained"] == [{"resourceType": "Organization", "name": "Acme"}]

    def test_non_member_is_rejected(self, generated_library):
        root, _ = generated_library
        container_class = load(root, "resource.resource_container", "FHIRResourceContainer")
        with pytest.raises(ValueError, match="DomainResource"):
            container_class({"resourceType": "DomainResource"})
        with pytest.raises(ValueError, match="resourceType"):
            container_class({"name": "Acme"})

    def test_set_contained_replaces(self, generated_library, patient_class, organization_class):
        root, _ = generated_library
        container_class = load(root, "resource.resource_container", "FHIRResourceContainer")
        container = container_class(organization_class())
        container.set_contained(patient_class())
        assert container.organization is None
        assert container.get_contained().get_resource_type() == "Patient"
        assert container.validate() == {}


class TestChangeTracking:
    def test_counts(self, patient_class):
        patient = patient_class()
        assert not patient.is_modified()
        patient.set_active(True)
        patient.set_active(False)
        patient.add_name({"family": "A"})
        assert patient.get_field_set_count("active") == 2
        assert patient.get_field_set_count("name") == 1
        patient.set_active(None)
        assert patient.get_field_removed_count("active") == 1
        assert patient.get_modified_fields() == ["active", "name"]


class TestStaticModules:
    def test_type_map(self, generated_library, patient_class):
        root, _ = generated_library
        type_map = importlib.import_module(f"{root}.type_map")
        assert type_map.get_type_class("Patient") is patient_class
        assert type_map.get_map()["Patient"] == f"{root}.resource.patient.FHIRPatient"
        assert type_map.is_resource_type("Patient")
        assert not type_map.is_resource_type("HumanName")
        assert type_map.is_container_type("ResourceContainer")
        with pytest.raises(KeyError):
            type_map.get_type_class("Nope")

    def test_autoloader(self, generated_library, patient_class):
        root, _ = generated_library
        autoloader = importlib.import_module(f"{root}.autoloader")
        assert autoloader.load("FHIRPatient") is patient_class
        assert autoloader.FHIRPatient is patient_class
        assert "FHIRPatient" in dir(autoloader)
        with pytest.raises(ImportError):
            autoloader.load("FHIRNope")
        with pytest.raises(AttributeError):
            autoloader.FHIRNope

    def test_constants(self, generated_library):
        root, _ = generated_library
        constants = importlib.import_module(f"{root}.constants")
        assert constants.TYPE_NAME_PATIENT_CONTACT == "Patient.Contact"
        assert constants.TYPE_CLASS_PATIENT == f"{root}.resource.FHIRPatient"
        assert constants.XML_NAMESPACE == "http://hl7.org/fhir"


class TestResponseParser:
    @pytest.fixture
    def parser_module(self, generated_library):
        root, _ = generated_library
        return importlib.import_module(f"{root}.response_parser")

    def test_json_text(self, parser_module, patient_class):
        parsed = parser_module.FHIRResponseParser().parse(json.dumps(PATIENT_JSON))
        assert isinstance(parsed, patient_class)
        assert parsed.to_json() == PATIENT_JSON

    def test_xml_bytes(self, parser_module, organization_class):
        parsed = parser_module.FHIRResponseParser().parse(
            b'<Organization xmlns="http://hl7.org/fhir"><name value="Acme"/></Organization>'
        )
        assert isinstance(parsed, organization_class)
        assert parsed.to_json() == {"resourceType": "Organization", "name": "Acme"}

    def test_empty_input(self, parser_module):
        assert parser_module.FHIRResponseParser().parse("   ") is None
        assert parser_module.FHIRResponseParser().parse(None) is None

    def test_unknown_type(self, parser_module):
        with pytest.raises(parser_module.FHIRResponseParseError, match="Observation"):
            parser_module.FHIRResponseParser().parse({"resourceType": "Observation"})

    def test_invalid_documents(self, parser_module):
        parser = parser_module.FHIRResponseParser()
        with pytest.raises(parser_module.FHIRResponseParseError):
            parser.parse("{not json")
        with pytest.raises(parser_module.FHIRResponseParseError):
            parser.parse("<Patient")
        with pytest.raises(parser_module.FHIRResponseParseError):
            parser.parse("plain text")

    def test_resources_only(self, generated_library, parser_module):
        root, _ = generated_library
        config_module = importlib.import_module(f"{root}.response_parser_config")
        config = config_module.FHIRResponseParserConfig.from_dict({"resources_only": True})
        parser = parser_module.FHIRResponseParser(config)
        with pytest.raises(parser_module.FHIRResponseParseError, match="not a resource"):
            parser.parse('<HumanName xmlns="http://hl7.org/fhir"><family value="A"/></HumanName>')


class TestGeneratedTests:
    @pytest.mark.parametrize(
        "relative",
        [
            "tests/unit/test_patient.py",
            "tests/unit/test_resource_container.py",
            "tests/unit/test_administrative_gender_list.py",
            "tests/unit/test_human_name.py",
            "tests/test_constants.py",
            "tests/test_type_map.py",
        ],
    )
    def test_generated_tests_pass(self, generated_library, relative):
        _, output = generated_library
        path = output / relative
        spec = importlib.util.spec_from_file_location(f"generated_{path.stem}", path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        suite = unittest.defaultTestLoader.loadTestsFromModule(module)
        stream = io.StringIO()
        result = unittest.TextTestRunner(stream=stream, verbosity=0).run(suite)
        assert result.wasSuccessful(), stream.getvalue()
        assert result.testsRun > 0
