import logging

from helpers import make_constraints, make_scenes
from trendfactory.continuity import analyze_continuity, find_contradictions, warn_on_contradictions


def test_matching_constraints_have_no_contradictions():
    constraints = make_constraints()
    assert find_contradictions("scene_01", constraints, constraints) == []


def test_antonyms_are_flagged_per_field():
    global_constraints = make_constraints()
    scene = make_constraints(
        lighting="bright cold daylight",
        environment_type="outdoor rooftop garden",
    )

    found = find_contradictions("scene_03", scene, global_constraints)

    flagged = {(c.field_name, c.words) for c in found}
    assert ("lighting", ("warm", "cold")) in flagged
    assert ("environment_type", ("indoor", "outdoor")) in flagged
    assert all(c.scene_id == "scene_03" for c in found)


def test_unchecked_fields_are_ignored():
    scene = make_constraints(camera_axis="harsh handheld", motion_energy="cold and static")
    assert find_contradictions("scene_01", scene, make_constraints()) == []


def test_contradiction_warnings_are_logged(caplog):
    scene = make_constraints(color_palette="cold blues")
    with caplog.at_level(logging.WARNING):
        found = warn_on_contradictions("scene_02", scene, make_constraints())

    assert len(found) == 1
    assert "scene_02.color_palette" in caplog.text


def with_prompts(prompts, levels=None):
    scenes = make_scenes(len(prompts))
    return [
        scene.model_copy(
            update={
                "visual_prompt": prompt,
                "absurdity_level": levels[i] if levels else scene.absurdity_level,
            }
        )
        for i, (scene, prompt) in enumerate(zip(scenes, prompts))
    ]


def test_consistent_scenes_are_low_severity():
    scenes = with_prompts(["A kitchen at morning"] * 4)
    analyses = analyze_continuity(scenes)

    assert len(analyses) == 3
    assert all(a.severity == "low" and a.issues == [] for a in analyses)


def test_large_absurdity_jump_is_reported():
    scenes = with_prompts(["A kitchen"] * 4, levels=[1, 2, 7, 8])
    analyses = analyze_continuity(scenes)

    assert analyses[1].scene_id == "scene_02"
    assert analyses[1].next_scene_id == "scene_03"
    assert analyses[1].severity == "medium"
    assert "5 levels" in analyses[1].issues[0]
    assert analyses[0].severity == "low"


def test_location_and_lighting_changes_are_reported(caplog):
    scenes = with_prompts(
        ["An office at morning", "A park at night", "A park at night", "A park at night"],
        levels=[1, 5, 6, 7],
    )
    with caplog.at_level(logging.WARNING):
        analyses = analyze_continuity(scenes)

    first = analyses[0]
    assert first.issues == [
        "Large absurdity jump (4 levels) may cause visual discontinuity",
        "Location change detected: office -> park",
        "Lighting change detected: morning -> night",
    ]
    assert first.severity == "high"
    assert "HIGH continuity issues between scene_01 and scene_02" in caplog.text


def test_scenes_without_prompts_only_check_absurdity():
    scenes = make_scenes(4)
    assert all(a.issues == [] for a in analyze_continuity(scenes))
