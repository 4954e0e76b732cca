from fhir_schema_to_code.utils import python_identifier, snake_to_pascal_case, to_snake_case


class TestSnakeToPascalCase:
    def test_snake_case(self):
        assert snake_to_pascal_case("first_name") == "FirstName"

    def test_camel_case(self):
        assert snake_to_pascal_case("dateTime") == "DateTime"

    def test_dotted_name(self):
        assert snake_to_pascal_case("Patient.Contact") == "PatientContact"

    def test_hyphenated_name(self):
        assert snake_to_pascal_case("AdministrativeGender-list") == "AdministrativeGenderList"
        assert snake_to_pascal_case("string-primitive") == "StringPrimitive"

    def test_empty(self):
        assert snake_to_pascal_case("") == ""


class TestToSnakeCase:
    def test_camel_case(self):
        assert to_snake_case("deceasedBoolean") == "deceased_boolean"

    def test_pascal_case(self):
        assert to_snake_case("DomainResource") == "domain_resource"

    def test_acronym(self):
        assert to_snake_case("HTTPVerb") == "http_verb"

    def test_separators(self):
        assert to_snake_case("Patient.Contact") == "patient_contact"
        assert to_snake_case("string-primitive") == "string_primitive"


class TestPythonIdentifier:
    def test_plain_name(self):
        assert python_identifier("birthDate") == "birth_date"

    def test_keyword_is_escaped(self):
        assert python_identifier("class") == "class_"
        assert python_identifier("for") == "for_"

    def test_leading_digit(self):
        assert python_identifier("1st") == "_1st"

    def test_soft_keyword_is_kept(self):
        assert python_identifier("type") == "type"
