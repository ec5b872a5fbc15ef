"""
Unit tests for PricingParser.
"""

import copy
import dataclasses
import pytest
from datetime import date, datetime, timezone

from service_pricing.app.expressions import ExpressionCompiler
from service_pricing.app.models import FeatureType, UsageLimitType, ValueType
from service_pricing.app.parser import PricingParser, parse
from service_pricing.app.versioning import V2_0
from shared.errors import (
    ConfigError,
    ConfigStructureError,
    ExpressionEvaluationError,
    ExpressionSyntaxError,
    InvalidValueError,
    MissingRequiredFieldError,
    TypeMismatchError,
    UnknownEnumValueError,
    UnresolvedReferenceError,
    VersionError,
)


class TestParsePetclinic:
    """Test cases for a complete canonical document."""

    def test_basic_attributes(self, petclinic):
        """Test top-level attributes."""
        assert petclinic.saas_name == "Petclinic"
        assert petclinic.currency == "EUR"
        assert petclinic.created_at == date(2024, 8, 31)
        assert petclinic.version == V2_0
        assert petclinic.pricing_version == "2024"
        assert petclinic.has_annual_payment is True
        assert petclinic.url == "https://petclinic.example.org/pricing"
        assert petclinic.starts is None
        assert petclinic.variables == {"seatPrice": 4.99}

    def test_features(self, petclinic):
        """Test the feature catalog."""
        assert list(petclinic.features) == [
            "haveCalendar",
            "havePetsDashboard",
            "haveVetSelection",
            "haveOnlineConsultations",
            "maxPets",
            "supportPriority",
            "maxVisits",
        ]

        calendar = petclinic.features["haveCalendar"]
        assert calendar.name == "haveCalendar"
        assert calendar.type == FeatureType.CAPABILITY
        assert calendar.value_type == ValueType.BOOLEAN
        assert calendar.default_value is False
        assert calendar.description == "Calendar to manage appointments"

        assert petclinic.features["havePetsDashboard"].name == "Pets dashboard"
        assert petclinic.features["haveOnlineConsultations"].tags == ("consultations", "premium")
        assert petclinic.features["supportPriority"].default_value == "LOW"

    def test_formula_feature(self, petclinic):
        """Test a feature whose value is computed."""
        visits = petclinic.features["maxVisits"]

        assert visits.default_value is None
        assert visits.formula.source == "users * 2"
        assert visits.formula.variables == frozenset({"users"})
        assert visits.variables == {"users": 5}

    def test_usage_limits(self, petclinic):
        """Test the usage limit catalog."""
        pets = petclinic.usage_limits["maxPets"]

        assert pets.type == UsageLimitType.NON_RENEWABLE
        assert pets.default_value == 2
        assert pets.unit == "pet"
        assert pets.linked_features == ("maxPets",)
        assert petclinic.usage_limits["maxVisitsPerMonthAndPet"].type == UsageLimitType.RENEWABLE

    def test_plans(self, petclinic):
        """Test plans and their sparse overrides."""
        assert list(petclinic.plans) == ["BASIC", "GOLD", "PLATINUM"]

        basic = petclinic.plans["BASIC"]
        assert basic.price.amount == 0.0
        assert basic.price.is_formula is False
        assert basic.features == {}
        assert basic.usage_limits == {}

        gold = petclinic.plans["GOLD"]
        assert gold.price.amount == 5.99
        assert gold.unit == "user/month"
        assert gold.features == {"haveCalendar": True, "havePetsDashboard": True, "maxPets": 4}
        assert gold.usage_limits == {"maxPets": 4, "maxVisitsPerMonthAndPet": 3}

    def test_price_formula(self, petclinic):
        """Test a price formula resolved against root variables."""
        price = petclinic.plans["PLATINUM"].price

        assert price.is_formula is True
        assert price.formula.source == "seatPrice * 2"
        assert price.amount == pytest.approx(9.98)

    def test_add_ons(self, petclinic):
        """Test add-ons and their references."""
        assert list(petclinic.add_ons) == ["EXTRA_PETS", "ONLINE_CONSULTATIONS", "PRIORITY_SUPPORT"]

        extra_pets = petclinic.add_ons["EXTRA_PETS"]
        assert extra_pets.available_for == ("BASIC", "GOLD")
        assert extra_pets.usage_limits == {"maxPets": 10}
        assert extra_pets.is_available_for("GOLD") is True
        assert extra_pets.is_available_for("PLATINUM") is False

        priority = petclinic.add_ons["PRIORITY_SUPPORT"]
        assert priority.depends_on == ("ONLINE_CONSULTATIONS",)
        assert priority.is_available_for("PLATINUM") is True

    def test_parse_is_idempotent(self, parser, petclinic_document):
        """Test that parsing twice yields equal models."""
        assert parser.parse(petclinic_document) == parser.parse(petclinic_document)

    def test_input_is_not_mutated(self, parser, petclinic_document):
        """Test the caller's document is left untouched."""
        original = copy.deepcopy(petclinic_document)

        parser.parse(petclinic_document)

        assert petclinic_document == original

    def test_manager_is_immutable(self, petclinic):
        """Test the parsed model cannot be changed."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            petclinic.saas_name = "Other"
        with pytest.raises(TypeError):
            petclinic.plans["ENTERPRISE"] = petclinic.plans["GOLD"]
        with pytest.raises(TypeError):
            petclinic.plans["GOLD"].features["maxPets"] = 100

    def test_module_level_parse(self, petclinic_document, petclinic):
        """Test the module-level entry point."""
        assert parse(petclinic_document) == petclinic


class TestParseLegacyDocuments:
    """Test cases for documents declared with an older version."""

    def test_v1_0(self, parser, fixture_loader):
        """Test a 1.0 document is migrated before parsing."""
        manager = parser.parse(fixture_loader("v1_0.yml"))

        assert manager.version == V2_0
        assert manager.created_at == date(2024, 8, 31)
        assert manager.pricing_version is None
        assert manager.plans["BASIC"].features == {"haveCalendar": True}

    def test_v1_1(self, parser, fixture_loader):
        """Test temporal fields of a 1.1 document."""
        manager = parser.parse(fixture_loader("v1_1.yml"))

        assert manager.created_at == date(2024, 8, 30)
        assert manager.starts == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert manager.ends == datetime(2024, 12, 31, 21, 59, 59, tzinfo=timezone.utc)
        assert manager.is_active_at(datetime(2024, 6, 1, tzinfo=timezone.utc)) is True
        assert manager.is_active_at(datetime(2025, 1, 1, tzinfo=timezone.utc)) is False

    def test_untagged_document(self, parser, fixture_loader):
        """Test an untagged document is read as 1.0."""
        manager = parser.parse(fixture_loader("null_version.yml"))

        assert manager.created_at == date(2024, 2, 1)
        assert manager.plans == {}
        assert manager.add_ons["CALENDAR"].price.amount == 1.5

    def test_unsupported_version(self, parser, base_document):
        """Test version errors surface from parse."""
        base_document["syntaxVersion"] = "3.0"

        with pytest.raises(VersionError):
            parser.parse(base_document)


class TestBasicAttributes:
    """Test cases for phase 1."""

    @pytest.mark.parametrize("field", ["saasName", "currency", "createdAt"])
    def test_required(self, parser, base_document, field):
        """Test mandatory top-level fields."""
        base_document[field] = None

        with pytest.raises(MissingRequiredFieldError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == f'"{field}" is required and was not defined'

    def test_invalid_created_at(self, parser, base_document):
        """Test createdAt must be an ISO date."""
        base_document["createdAt"] = "31/08/2024"

        with pytest.raises(TypeMismatchError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == '"createdAt" type is text and must be an ISO-8601 date'

    def test_has_annual_payment_type(self, parser, base_document):
        """Test hasAnnualPayment must be a boolean."""
        base_document["hasAnnualPayment"] = "yes"

        with pytest.raises(TypeMismatchError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == '"hasAnnualPayment" type is text and must be boolean'

    def test_instant_needs_offset(self, parser, base_document):
        """Test canonical instants carry an offset."""
        base_document["starts"] = "2024-01-01T00:00:00"

        with pytest.raises(TypeMismatchError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == '"starts" type is text without offset and must be an ISO-8601 instant'

    def test_date_only_instant(self, parser, base_document):
        """Test canonical instants are full date-times, not dates."""
        base_document["starts"] = "2024-01-01"

        with pytest.raises(TypeMismatchError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == '"starts" type is text without offset and must be an ISO-8601 instant'

    def test_instant_out_of_range(self, parser, base_document):
        """Test an instant that cannot be moved to UTC."""
        base_document["starts"] = "0001-01-01T00:00:00+05:00"

        with pytest.raises(InvalidValueError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == '"starts" value 0001-01-01T00:00:00+05:00 is outside the representable range'

    def test_starts_after_ends(self, parser, base_document):
        """Test the validity window is ordered."""
        base_document["starts"] = "2025-01-01T00:00:00Z"
        base_document["ends"] = "2024-01-01T00:00:00Z"

        with pytest.raises(InvalidValueError):
            parser.parse(base_document)

    def test_variables_must_be_scalars(self, parser, base_document):
        """Test pricing variables are scalars."""
        base_document["variables"] = {"tiers": [1, 2]}

        with pytest.raises(TypeMismatchError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == '"variables.tiers" type is sequence and must be boolean, number or text'

    def test_variables_must_be_finite(self, parser, base_document):
        """Test pricing variables are finite numbers."""
        base_document["variables"] = {"seatPrice": float("inf")}

        with pytest.raises(InvalidValueError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == '"variables.seatPrice" value inf must be a finite number'

    def test_numeric_pricing_version(self, parser, base_document):
        """Test a numeric pricing version label is kept as text."""
        base_document["version"] = 2024

        assert parser.parse(base_document).pricing_version == "2024"


class TestFeatureCatalog:
    """Test cases for phase 2."""

    def test_features_required(self, parser, base_document):
        """Test the feature catalog is mandatory."""
        del base_document["features"]

        with pytest.raises(MissingRequiredFieldError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == '"features" is required and was not defined'

    def test_features_must_be_mapping(self, parser, base_document):
        """Test the feature catalog shape."""
        base_document["features"] = ["haveCalendar"]

        with pytest.raises(ConfigStructureError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == '"features" must be a mapping, got sequence'

    def test_unknown_type(self, parser, base_document):
        """Test the closed feature type enumeration."""
        base_document["features"]["haveCalendar"]["type"] = "FEATURE"

        with pytest.raises(UnknownEnumValueError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == (
            "\"features.haveCalendar.type\" value 'FEATURE' is not one of: "
            "CAPABILITY, AUTOMATION, GUARANTEE, SUPPORT, PAYMENT, INFORMATION"
        )

    def test_unknown_value_type(self, parser, base_document):
        """Test the closed value type enumeration."""
        base_document["features"]["haveCalendar"]["valueType"] = "DATE"

        with pytest.raises(UnknownEnumValueError):
            parser.parse(base_document)

    @pytest.mark.parametrize("feature_id,value,message", [
        ("haveCalendar", "yes", '"features.haveCalendar.defaultValue" type is text and must be boolean'),
        ("maxPets", True, '"features.maxPets.defaultValue" type is boolean and must be number'),
        ("maxPets", "2", '"features.maxPets.defaultValue" type is text and must be number'),
    ])
    def test_default_value_type(self, parser, base_document, feature_id, value, message):
        """Test defaultValue must match valueType."""
        base_document["features"][feature_id]["defaultValue"] = value

        with pytest.raises(TypeMismatchError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == message

    def test_default_value_must_be_finite(self, parser, base_document):
        """Test NaN is not a numeric default."""
        base_document["features"]["maxPets"]["defaultValue"] = float("nan")

        with pytest.raises(InvalidValueError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == '"features.maxPets.defaultValue" value nan must be a finite number'

    def test_default_value_required(self, parser, base_document):
        """Test defaultValue is mandatory without a formula."""
        del base_document["features"]["haveCalendar"]["defaultValue"]

        with pytest.raises(MissingRequiredFieldError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == '"features.haveCalendar.defaultValue" is required and was not defined'

    def test_formula_syntax_checked_at_parse(self, parser, base_document):
        """Test feature formulas are compiled while parsing."""
        base_document["features"]["maxPets"]["formula"] = "users *"

        with pytest.raises(ExpressionSyntaxError) as exc_info:
            parser.parse(base_document)

        assert exc_info.value.details["path"] == "features.maxPets.formula"

    def test_tags_must_be_list(self, parser, base_document):
        """Test a bare string is not a tag list."""
        base_document["features"]["haveCalendar"]["tags"] = "scheduling"

        with pytest.raises(TypeMismatchError):
            parser.parse(base_document)

    def test_phase_order(self, parser, base_document):
        """Test the first failing phase determines the error."""
        base_document["features"]["haveCalendar"]["type"] = "FEATURE"
        base_document["plans"]["BASIC"]["price"] = True

        with pytest.raises(UnknownEnumValueError):
            parser.parse(base_document)


class TestUsageLimitCatalog:
    """Test cases for phase 3."""

    def test_text_value_type_rejected(self, parser, base_document):
        """Test usage limits are boolean or numeric only."""
        base_document["usageLimits"]["maxPets"]["valueType"] = "TEXT"

        with pytest.raises(UnknownEnumValueError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == "\"usageLimits.maxPets.valueType\" value 'TEXT' is not one of: BOOLEAN, NUMERIC"

    def test_unknown_linked_feature(self, parser, base_document):
        """Test linkedFeatures must reference the catalog."""
        base_document["usageLimits"]["maxPets"]["linkedFeatures"] = ["maxPets", "maxCats"]

        with pytest.raises(UnresolvedReferenceError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == (
            "\"usageLimits.maxPets.linkedFeatures\" references 'maxCats' which is not defined in features"
        )

    def test_unit_required(self, parser, base_document):
        """Test the unit is mandatory."""
        del base_document["usageLimits"]["maxPets"]["unit"]

        with pytest.raises(MissingRequiredFieldError):
            parser.parse(base_document)

    def test_usage_limits_optional(self, parser, base_document):
        """Test a pricing without usage limits."""
        del base_document["usageLimits"]

        assert parser.parse(base_document).usage_limits == {}


class TestPlans:
    """Test cases for phase 4."""

    def test_unknown_feature_override(self, parser, base_document):
        """Test overrides must reference the catalog."""
        base_document["plans"]["BASIC"]["features"] = {"ghost": {"value": True}}

        with pytest.raises(UnresolvedReferenceError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == "\"plans.BASIC.features.ghost\" references 'ghost' which is not defined in features"

    def test_unknown_usage_limit_override(self, parser, base_document):
        """Test usage limit overrides use their own namespace."""
        base_document["plans"]["BASIC"]["usageLimits"] = {"haveCalendar": {"value": 1}}

        with pytest.raises(UnresolvedReferenceError) as exc_info:
            parser.parse(base_document)

        assert exc_info.value.details["catalog"] == "usageLimits"

    def test_override_type(self, parser, base_document):
        """Test override values must match the catalog valueType."""
        base_document["plans"]["BASIC"]["features"] = {"haveCalendar": {"value": 1}}

        with pytest.raises(TypeMismatchError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == '"plans.BASIC.features.haveCalendar.value" type is integer and must be boolean'

    def test_null_override_is_no_override(self, parser, base_document):
        """Test null overrides fall back to the catalog."""
        base_document["plans"]["BASIC"]["features"] = {
            "haveCalendar": None,
            "maxPets": {"value": None},
        }

        assert parser.parse(base_document).plans["BASIC"].features == {}

    def test_price_type(self, parser, base_document):
        """Test a price is a number or a formula."""
        base_document["plans"]["BASIC"]["price"] = True

        with pytest.raises(TypeMismatchError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == '"plans.BASIC.price" type is boolean and must be a number or a formula'

    def test_price_formula_with_plan_variables(self, parser, base_document):
        """Test plan variables shadow root variables in price formulas."""
        base_document["variables"] = {"seats": 10, "seatPrice": 2}
        base_document["plans"]["BASIC"]["price"] = "seats * seatPrice"
        base_document["plans"]["BASIC"]["variables"] = {"seats": 3}

        price = parser.parse(base_document).plans["BASIC"].price

        assert price.amount == 6
        assert price.variables == {"seats": 3}

    def test_price_formula_syntax(self, parser, base_document):
        """Test malformed price formulas are configuration errors."""
        base_document["plans"]["BASIC"]["price"] = "2 **"

        with pytest.raises(ConfigError):
            parser.parse(base_document)

    def test_price_formula_undeclared_variable(self, parser, base_document):
        """Test price formulas only see declared variables."""
        base_document["plans"]["BASIC"]["price"] = "seats * 2"

        with pytest.raises(ExpressionEvaluationError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == "Variable 'seats' is not declared"

    def test_price_formula_must_be_numeric(self, parser, base_document):
        """Test price formulas evaluate to a number."""
        base_document["plans"]["BASIC"]["price"] = "1 < 2"

        with pytest.raises(ExpressionEvaluationError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == 'Price formula of "plans.BASIC.price" evaluated to boolean and must be numeric'

    def test_price_must_be_finite(self, parser, base_document):
        """Test literal prices are finite numbers."""
        base_document["plans"]["BASIC"]["price"] = float("-inf")

        with pytest.raises(InvalidValueError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == '"plans.BASIC.price" value -inf must be a finite number'

    @pytest.mark.parametrize("formula", ["9" * 400 + " / 3", "1e999 - 1e999"])
    def test_price_formula_out_of_range(self, parser, base_document, formula):
        """Test price formulas that leave the finite numeric range."""
        base_document["plans"]["BASIC"]["price"] = formula

        with pytest.raises(ExpressionEvaluationError) as exc_info:
            parser.parse(base_document)

        assert "outside the finite numeric range" in str(exc_info.value)

    def test_plans_or_add_ons_required(self, parser, base_document):
        """Test at least one of plans or addOns is present."""
        base_document["plans"] = {}

        with pytest.raises(MissingRequiredFieldError) as exc_info:
            parser.parse(base_document)

        assert str(exc_info.value) == 'At least one of "plans" or "addOns" must be defined and non-empty'

    def test_private_plan(self, parser, base_document):
        """Test the private flag."""
        base_document["plans"]["BASIC"]["private"] = True

        assert parser.parse(base_document).plans["BASIC"].private is True


class TestAddOns:
    """Test cases for phase 5."""

    @pytest.fixture
    def document(self, base_document):
        base_document["addOns"] = {
            "EXTRA_PETS": {
                "price": 2,
                "availableFor": ["BASIC"],
                "usageLimits": {"maxPets": {"value": 10}},
            },
            "CALENDAR": {
                "price": 1,
                "features": {"haveCalendar": {"value": True}},
            },
        }
        return base_document

    def test_parsed(self, parser, document):
        """Test add-on fields."""
        add_ons = parser.parse(document).add_ons

        assert add_ons["EXTRA_PETS"].available_for == ("BASIC",)
        assert add_ons["CALENDAR"].available_for == ()
        assert add_ons["CALENDAR"].features == {"haveCalendar": True}

    def test_unknown_plan(self, parser, document):
        """Test availableFor must reference plans."""
        document["addOns"]["EXTRA_PETS"]["availableFor"] = ["ENTERPRISE"]

        with pytest.raises(UnresolvedReferenceError) as exc_info:
            parser.parse(document)

        assert str(exc_info.value) == (
            "\"addOns.EXTRA_PETS.availableFor\" references 'ENTERPRISE' which is not defined in plans"
        )

    def test_unknown_dependency(self, parser, document):
        """Test dependsOn must reference add-ons."""
        document["addOns"]["CALENDAR"]["dependsOn"] = ["SUPPORT"]

        with pytest.raises(UnresolvedReferenceError) as exc_info:
            parser.parse(document)

        assert exc_info.value.details["catalog"] == "addOns"

    def test_forward_reference(self, parser, document):
        """Test references to add-ons declared later are resolved."""
        document["addOns"]["EXTRA_PETS"]["excludes"] = ["CALENDAR"]

        assert parser.parse(document).add_ons["EXTRA_PETS"].excludes == ("CALENDAR",)

    def test_self_reference(self, parser, document):
        """Test an add-on cannot depend on itself."""
        document["addOns"]["CALENDAR"]["dependsOn"] = ["CALENDAR"]

        with pytest.raises(InvalidValueError):
            parser.parse(document)

    def test_add_ons_without_plans(self, parser, document):
        """Test a pricing made of add-ons only."""
        del document["plans"]
        del document["addOns"]["EXTRA_PETS"]["availableFor"]

        manager = parser.parse(document)

        assert manager.plans == {}
        assert len(manager.add_ons) == 2


class TestParserConfiguration:
    """Test cases for injected collaborators."""

    def test_custom_compiler_bounds(self, base_document):
        """Test a parser with a tighter formula bound."""
        parser = PricingParser(compiler=ExpressionCompiler(max_length=5))
        base_document["variables"] = {"seats": 3}
        base_document["plans"]["BASIC"]["price"] = "seats * 10"

        with pytest.raises(ExpressionSyntaxError):
            parser.parse(base_document)
