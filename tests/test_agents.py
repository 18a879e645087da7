import json
from pathlib import Path

import pytest

from helpers import make_constraints, make_pattern_analysis, make_scenes, make_trend
from trendfactory.agents import (
    EscalationInput,
    EscalationPlannerAgent,
    QualityAssessmentInput,
    QualityAssessorAgent,
    TrendSynthesisInput,
    TrendSynthesizerAgent,
    VideoGenerationInput,
    VideoGeneratorAgent,
    VisualLockInput,
    VisualLockerAgent,
)
from trendfactory.agents.video_generator import build_video_prompt
from trendfactory.agents.visual_locker import echo_global_continuity, shot_type_for
from trendfactory.errors import AgentOutputError, ExternalServiceError
from trendfactory.models import TrendSynthesized
from trendfactory.services.anthropic import extract_json
from trendfactory.services.imagen import ImageResult
from trendfactory.services.veo import GenerationResult, GenerationStatus


class FakeClaude:
    model = "fake-model"

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def create_message(self, prompt, max_tokens=4096, system=None, temperature=0.7):
        self.calls.append(
            {"prompt": prompt, "max_tokens": max_tokens, "system": system, "temperature": temperature}
        )
        return self.responses.pop(0)


class FakeImagen:
    def __init__(self):
        self.calls = []

    def generate_image(self, prompt, output_path, aspect_ratio="16:9", negative_prompt=None, seed=None):
        self.calls.append({"prompt": prompt, "output_path": output_path, "seed": seed})
        return ImageResult(prompt=prompt, local_path=output_path)


class FakeVeo:
    def __init__(self, status=GenerationStatus.COMPLETED, error_message=None):
        self.status = status
        self.error_message = error_message
        self.calls = []

    def generate_clip(self, prompt, output_path, duration=6.0, aspect_ratio="16:9",
                      scene_id=None, image_path=None, seed=None):
        self.calls.append(
            {"prompt": prompt, "output_path": output_path, "image_path": image_path, "seed": seed}
        )
        completed = self.status == GenerationStatus.COMPLETED
        return GenerationResult(
            operation_id=f"veo-{scene_id}",
            status=self.status,
            local_path=output_path if completed else None,
            error_message=self.error_message,
        )


def trend_payload():
    return {
        "patternAnalysis": make_pattern_analysis().to_json_dict(),
        "trend": make_trend().to_json_dict(),
    }


def escalation_payload(levels=(2, 4, 6, 8, 10)):
    return {
        "globalContinuity": make_constraints().to_json_dict(),
        "scenes": [
            {"sceneId": f"scene_0{i + 1}", "intent": f"Beat {i + 1}", "absurdityLevel": level}
            for i, level in enumerate(levels)
        ],
    }


LONG_PROMPT = (
    "Wide shot of a woman at her kitchen table sorting her cutlery into labelled trays, "
    "calm and methodical."
)


def test_extract_json_from_fenced_block():
    assert extract_json('Here you go:\n```json\n{"a": 1}\n```\nDone') == '{"a": 1}'


def test_extract_json_from_prose():
    text = 'Sure! {"a": {"b": "}"}} trailing'
    assert json.loads(extract_json(text)) == {"a": {"b": "}"}}


@pytest.mark.asyncio
async def test_trend_synthesizer_parses_fenced_json():
    client = FakeClaude(f"```json\n{json.dumps(trend_payload())}\n```")
    agent = TrendSynthesizerAgent(client=client)

    delta = await agent.run(TrendSynthesisInput(seed=42, attempt=1, avoid=["Quiet Quitting Cooking"]))

    assert isinstance(delta, TrendSynthesized)
    assert delta.trend.name == "Inbox Zero Living"
    prompt = client.calls[0]["prompt"]
    assert "Seed for this generation: 42" in prompt
    assert "Quiet Quitting Cooking" in prompt
    assert client.calls[0]["system"] == agent.system_prompt


@pytest.mark.asyncio
async def test_trend_synthesizer_rejects_non_json():
    agent = TrendSynthesizerAgent(client=FakeClaude("I cannot help with that."))
    with pytest.raises(AgentOutputError, match="invalid JSON"):
        await agent.run(TrendSynthesisInput(seed=1))


@pytest.mark.asyncio
async def test_trend_synthesizer_reports_missing_fields():
    payload = trend_payload()
    del payload["trend"]["collapsePoint"]
    agent = TrendSynthesizerAgent(client=FakeClaude(json.dumps(payload)))

    with pytest.raises(AgentOutputError) as exc_info:
        await agent.run(TrendSynthesisInput(seed=1))

    assert any("collapsePoint" in path for path, _ in exc_info.value.field_errors)
    assert exc_info.value.payload["trend"]["name"] == "Inbox Zero Living"


@pytest.mark.asyncio
async def test_quality_assessor_derives_overall_and_pass():
    client = FakeClaude(json.dumps({
        "plausibilityScore": 9,
        "cloneabilityScore": 8,
        "lifecycleCompletenessScore": 7,
        "overallScore": 2,
        "rejectionReason": None,
    }))
    agent = QualityAssessorAgent(client=client)

    delta = await agent.run(
        QualityAssessmentInput(trend=make_trend(), pattern_analysis=make_pattern_analysis())
    )

    assert delta.trend_quality.overall_score == 8.0
    assert delta.trend_quality.passes_threshold is True
    assert "before/after reveal" in client.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_quality_assessor_applies_threshold():
    client = FakeClaude(json.dumps({
        "plausibilityScore": 8,
        "cloneabilityScore": 8,
        "lifecycleCompletenessScore": 8,
    }))
    agent = QualityAssessorAgent(client=client)

    delta = await agent.run(QualityAssessmentInput(trend=make_trend(), threshold=9.0))

    assert delta.trend_quality.passes_threshold is False
    assert delta.trend_quality.rejection_reason


@pytest.mark.asyncio
async def test_quality_assessor_rejects_out_of_range_scores():
    client = FakeClaude(json.dumps({
        "plausibilityScore": 12,
        "cloneabilityScore": 8,
        "lifecycleCompletenessScore": 8,
    }))
    with pytest.raises(AgentOutputError):
        await QualityAssessorAgent(client=client).run(QualityAssessmentInput(trend=make_trend()))


@pytest.mark.asyncio
async def test_escalation_planner_builds_delta_with_seeded_temperature():
    client = FakeClaude(json.dumps(escalation_payload()))
    agent = EscalationPlannerAgent(client=client)

    delta = await agent.run(EscalationInput(trend=make_trend(), seed=42))

    assert [s.absurdity_level for s in delta.scenes] == [2, 4, 6, 8, 10]
    assert delta.global_continuity == make_constraints()
    assert client.calls[0]["temperature"] == pytest.approx(0.6 + 42 / 500)
    assert "Plan a 5-scene video" in client.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_escalation_planner_rejects_flat_absurdity():
    client = FakeClaude(json.dumps(escalation_payload(levels=(2, 4, 4, 8, 10))))
    with pytest.raises(AgentOutputError, match="output validation failed"):
        await EscalationPlannerAgent(client=client).run(EscalationInput(trend=make_trend(), seed=1))


@pytest.mark.asyncio
async def test_escalation_planner_rejects_wrong_scene_ids():
    payload = escalation_payload()
    payload["scenes"][1]["sceneId"] = "scene_07"
    client = FakeClaude(json.dumps(payload))
    with pytest.raises(AgentOutputError):
        await EscalationPlannerAgent(client=client).run(EscalationInput(trend=make_trend(), seed=1))


def lock_input(tmp_path, index=1):
    scenes = make_scenes(5)
    return VisualLockInput(
        trend=make_trend(),
        scene=scenes[index],
        all_scenes=scenes,
        global_continuity=make_constraints(),
        seed=42,
        output_dir=tmp_path,
    )


@pytest.mark.asyncio
async def test_visual_locker_forces_scene_id_and_echoes_continuity(tmp_path):
    client = FakeClaude(json.dumps({
        "sceneId": "scene_05",
        "visualPrompt": LONG_PROMPT,
        "sceneConstraints": make_constraints().to_json_dict(),
    }))
    imagen = FakeImagen()
    agent = VisualLockerAgent(client=client, image_client=imagen)

    delta = await agent.run(lock_input(tmp_path))

    assert delta.scene_id == "scene_02"
    assert delta.visual_prompt.startswith(LONG_PROMPT)
    constraints = make_constraints()
    for value in (constraints.lighting, constraints.camera_axis, constraints.color_palette):
        assert value in delta.visual_prompt
    assert delta.concept_image_path == str(tmp_path / "scenes" / "scene_02_concept.png")
    assert imagen.calls[0]["seed"] == 42
    prompt = client.calls[0]["prompt"]
    assert "PREVIOUS SCENE: Step 1" in prompt
    assert "NEXT SCENE: Step 3" in prompt


@pytest.mark.asyncio
async def test_visual_locker_rejects_short_prompt(tmp_path):
    client = FakeClaude(json.dumps({
        "visualPrompt": "Too short",
        "sceneConstraints": make_constraints().to_json_dict(),
    }))
    agent = VisualLockerAgent(client=client, image_client=FakeImagen())

    with pytest.raises(AgentOutputError):
        await agent.run(lock_input(tmp_path))


def test_echo_leaves_complete_prompt_alone():
    constraints = make_constraints()
    prompt = " ".join(
        [
            constraints.lighting,
            constraints.camera_axis,
            constraints.motion_energy,
            constraints.color_palette,
            constraints.environment_type,
        ]
    )
    assert echo_global_continuity(prompt, constraints) == prompt


def test_shot_type_by_absurdity():
    assert shot_type_for(1).startswith("Wide")
    assert shot_type_for(3).startswith("Wide")
    assert shot_type_for(4).startswith("Medium")
    assert shot_type_for(6).startswith("Medium")
    assert shot_type_for(7).startswith("Close-up")


def test_video_prompt_guidance():
    scene = make_scenes(5)[4].model_copy(update={"visual_prompt": LONG_PROMPT})
    chained = build_video_prompt(scene, chained=True)
    assert chained.startswith(LONG_PROMPT)
    assert "Slightly surreal atmosphere" in chained
    assert "Maintain visual continuity with the previous frame" in chained
    assert "previous frame" not in build_video_prompt(scene, chained=False)


@pytest.mark.asyncio
async def test_video_generator_passes_input_image(tmp_path):
    veo = FakeVeo()
    agent = VideoGeneratorAgent(client=veo)
    scene = make_scenes(5)[1].model_copy(update={"visual_prompt": LONG_PROMPT})

    delta = await agent.run(
        VideoGenerationInput(
            trend=make_trend(),
            scene=scene,
            output_dir=tmp_path,
            input_image=str(tmp_path / "frames" / "scene_01_last.png"),
            chained=True,
            seed=42,
        )
    )

    assert delta.scene_id == "scene_02"
    assert delta.video_clip_path == str(tmp_path / "scenes" / "scene_02_clip.mp4")
    assert delta.continuity_frame_path is None
    assert veo.calls[0]["image_path"] == tmp_path / "frames" / "scene_01_last.png"
    assert veo.calls[0]["seed"] == 42


@pytest.mark.asyncio
async def test_video_generator_raises_on_failed_generation(tmp_path):
    agent = VideoGeneratorAgent(
        client=FakeVeo(status=GenerationStatus.FAILED, error_message="Quota exceeded")
    )
    scene = make_scenes(5)[0]

    with pytest.raises(ExternalServiceError, match="Quota exceeded"):
        await agent.run(VideoGenerationInput(trend=make_trend(), scene=scene, output_dir=tmp_path))
