"""
Tests for request validation models.
"""

import uuid

import pytest
from pydantic import ValidationError
from teamfinder.models.schemas import (
    CreateAffiliationRequest,
    CreateTeamRequest,
    ProfilePayload,
)


def _team(**overrides):
    data = {
        "userId": str(uuid.uuid4()),
        "name": "Strike Force",
        "teamType": "team",
        "genderType": "mixed",
        "competitionLevel": "league",
    }
    data.update(overrides)
    return data


class TestProfilePayload:
    def test_defaults(self):
        payload = ProfilePayload.model_validate(
            {"usbcMemberId": "1234", "gender": "male", "bowlingHand": "left"}
        )
        assert payload.current_average is None
        assert payload.preferred_team_types == []
        assert payload.preferred_competition_level is None
        assert payload.looking_for_team is False
        assert payload.open_to_substitute is False
        assert payload.bio is None

    def test_numeric_strings_are_parsed(self):
        payload = ProfilePayload.model_validate(
            {
                "usbcMemberId": "1234",
                "gender": "male",
                "bowlingHand": "left",
                "currentAverage": "185",
                "highSeries": "690",
                "yearsExperience": "",
            }
        )
        assert payload.current_average == 185
        assert payload.high_series == 690
        assert payload.years_experience is None

    def test_null_flags_and_lists(self):
        payload = ProfilePayload.model_validate(
            {
                "usbcMemberId": "1234",
                "gender": "other",
                "bowlingHand": "right",
                "lookingForTeam": None,
                "preferredTeamTypes": None,
                "preferredCompetitionLevel": "",
            }
        )
        assert payload.looking_for_team is False
        assert payload.preferred_team_types == []
        assert payload.preferred_competition_level is None

    def test_snake_case_keys_accepted(self):
        payload = ProfilePayload.model_validate(
            {"usbc_member_id": "1234", "gender": "female", "bowling_hand": "right"}
        )
        assert payload.usbc_member_id == "1234"

    def test_reports_every_invalid_field(self):
        """All violations are reported together, not just the first."""
        with pytest.raises(ValidationError) as exc_info:
            ProfilePayload.model_validate(
                {
                    "usbcMemberId": "",
                    "gender": "robot",
                    "bowlingHand": "both",
                    "currentAverage": "301",
                }
            )
        fields = {e["loc"][0] for e in exc_info.value.errors()}
        assert {"usbcMemberId", "gender", "bowlingHand", "currentAverage"} <= fields

    def test_rejects_unknown_team_type_preference(self):
        with pytest.raises(ValidationError):
            ProfilePayload.model_validate(
                {
                    "usbcMemberId": "1234",
                    "gender": "male",
                    "bowlingHand": "left",
                    "preferredTeamTypes": ["quartet"],
                }
            )


class TestCreateTeamRequest:
    def test_minimal(self):
        request = CreateTeamRequest.model_validate(_team())
        assert request.looking_for_players is False
        assert request.open_positions is None
        assert request.max_roster_size is None

    def test_legacy_other_gender_type_is_mixed(self):
        request = CreateTeamRequest.model_validate(_team(genderType="other"))
        assert request.gender_type.value == "mixed"

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            CreateTeamRequest.model_validate(_team(name="   "))

    def test_min_average_above_max_rejected(self):
        with pytest.raises(ValidationError, match="minAverage cannot be greater"):
            CreateTeamRequest.model_validate(_team(minAverage="200", maxAverage="150"))

    @pytest.mark.parametrize("size", [0, 21])
    def test_roster_size_bounds(self, size):
        with pytest.raises(ValidationError):
            CreateTeamRequest.model_validate(_team(maxRosterSize=size))

    def test_negative_open_positions_rejected(self):
        with pytest.raises(ValidationError):
            CreateTeamRequest.model_validate(_team(openPositions="-1"))

    def test_invalid_user_id_rejected(self):
        with pytest.raises(ValidationError):
            CreateTeamRequest.model_validate(_team(userId="not-a-uuid"))


class TestCreateAffiliationRequest:
    def test_type_defaults_to_other(self):
        assert CreateAffiliationRequest.model_validate({"name": "Acme"}).type.value == "other"
        assert (
            CreateAffiliationRequest.model_validate({"name": "Acme", "type": ""}).type.value
            == "other"
        )

    def test_name_required(self):
        with pytest.raises(ValidationError):
            CreateAffiliationRequest.model_validate({"type": "college", "name": ""})

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            CreateAffiliationRequest.model_validate({"name": "Acme", "type": "guild"})
