"""Tests for texture classification and derived slot data."""

import unittest

import numpy as np
from PIL import Image

from KTXBrew.config import TextureType
from KTXBrew.core import (
    ColorSpace, TextureChannel, channel_mask_for, classify_texture,
    color_space_for_slots, has_effective_alpha, slots_for_type,
)


class TestTextureClassification(unittest.TestCase):
    def test_base_color_patterns(self):
        self.assertEqual(classify_texture("brick_wall_diff.png"), TextureType.BASE_COLOR)
        self.assertEqual(classify_texture("metal_diffuse.jpg"), TextureType.BASE_COLOR)
        self.assertEqual(classify_texture("wood_color.png"), TextureType.BASE_COLOR)
        self.assertEqual(classify_texture("armor_c.png"), TextureType.BASE_COLOR)
        self.assertEqual(classify_texture("wall_basecolor.png"), TextureType.BASE_COLOR)
        self.assertEqual(classify_texture("rock_albedo.webp"), TextureType.BASE_COLOR)

    def test_normal_patterns(self):
        self.assertEqual(classify_texture("brick_normal.png"), TextureType.NORMAL)
        self.assertEqual(classify_texture("wall_norm.png"), TextureType.NORMAL)
        self.assertEqual(classify_texture("floor_nrm.jpg"), TextureType.NORMAL)
        self.assertEqual(classify_texture("rock_n.png"), TextureType.NORMAL)

    def test_occlusion_patterns(self):
        self.assertEqual(classify_texture("rock_ao.png"), TextureType.OCCLUSION)
        self.assertEqual(classify_texture("wall_occlusion.png"), TextureType.OCCLUSION)

    def test_metallic_roughness_patterns(self):
        self.assertEqual(classify_texture("gold_mr.png"), TextureType.METALLIC_ROUGHNESS)
        self.assertEqual(
            classify_texture("iron_metallicroughness.png"), TextureType.METALLIC_ROUGHNESS,
        )

    def test_orm_patterns(self):
        self.assertEqual(classify_texture("test_orm.png"), TextureType.ORM)
        self.assertEqual(classify_texture("wall_rma.png"), TextureType.ORM)
        self.assertEqual(classify_texture("brick_arm.png"), TextureType.ORM)

    def test_emissive_patterns(self):
        self.assertEqual(classify_texture("lamp_emissive.png"), TextureType.EMISSIVE)
        self.assertEqual(classify_texture("screen_glow.png"), TextureType.EMISSIVE)

    def test_case_insensitive(self):
        self.assertEqual(classify_texture("Brick_NORMAL.PNG"), TextureType.NORMAL)

    def test_unknown_defaults(self):
        self.assertEqual(classify_texture("bear.png"), TextureType.UNKNOWN)
        self.assertEqual(classify_texture("sandiff.png"), TextureType.UNKNOWN)


class TestSlots(unittest.TestCase):
    def test_slots_for_type(self):
        self.assertEqual(slots_for_type(TextureType.NORMAL), ["normalTexture"])
        self.assertEqual(
            slots_for_type(TextureType.ORM),
            ["occlusionTexture", "metallicRoughnessTexture"],
        )
        self.assertEqual(slots_for_type(TextureType.UNKNOWN), [])

    def test_slots_are_copies(self):
        slots = slots_for_type(TextureType.NORMAL)
        slots.append("other")
        self.assertEqual(slots_for_type(TextureType.NORMAL), ["normalTexture"])

    def test_color_space(self):
        self.assertEqual(color_space_for_slots(["baseColorTexture"]), ColorSpace.SRGB)
        self.assertEqual(color_space_for_slots(["emissiveTexture"]), ColorSpace.SRGB)
        self.assertIsNone(color_space_for_slots(["normalTexture"]))
        self.assertIsNone(color_space_for_slots([]))


class TestChannelMask(unittest.TestCase):
    def test_single_slots(self):
        self.assertEqual(channel_mask_for(["occlusionTexture"]), TextureChannel.R)
        self.assertEqual(
            channel_mask_for(["metallicRoughnessTexture"]),
            TextureChannel.G | TextureChannel.B,
        )
        self.assertEqual(channel_mask_for(["normalTexture"]), TextureChannel.RGB)

    def test_base_color_alpha(self):
        self.assertEqual(channel_mask_for(["baseColorTexture"], True), TextureChannel.RGBA)
        self.assertEqual(channel_mask_for(["baseColorTexture"], False), TextureChannel.RGB)

    def test_union(self):
        self.assertEqual(
            channel_mask_for(["occlusionTexture", "metallicRoughnessTexture"]),
            TextureChannel.RGB,
        )

    def test_unknown_slots(self):
        self.assertEqual(channel_mask_for([]), TextureChannel.NONE)
        self.assertEqual(channel_mask_for(["customTexture"]), TextureChannel.NONE)


class TestEffectiveAlpha(unittest.TestCase):
    def test_rgb_has_no_alpha(self):
        img = Image.fromarray(np.zeros((8, 8, 3), dtype=np.uint8))
        self.assertFalse(has_effective_alpha(img))

    def test_opaque_rgba_not_marked_as_effective_alpha(self):
        arr = np.full((8, 8, 4), 255, dtype=np.uint8)
        self.assertFalse(has_effective_alpha(Image.fromarray(arr)))

    def test_translucent_rgba(self):
        arr = np.full((8, 8, 4), 255, dtype=np.uint8)
        arr[0, 0, 3] = 10
        self.assertTrue(has_effective_alpha(Image.fromarray(arr)))


if __name__ == "__main__":
    unittest.main(verbosity=2)
