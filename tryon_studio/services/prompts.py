"""Prompt templates for the three image edits the studio asks for."""


IDENTITY_RULES = (
    "Preserve the person's identity exactly: face, hairstyle, skin tone and body shape must not change. "
    "The result must be a photorealistic, full-body fashion photo."
)

OUTPUT_RULES = "Return ONLY the final edited image. Do not add text, borders or watermarks."


def build_garment_prompt(background_prompt: str) -> str:
    """Prompt for layering the garment (image 2) onto the model (image 1)."""
    return (
        "You are an expert virtual try-on AI. The first image shows a person, the second image shows a clothing item. "
        "Dress the person from the first image in the clothing item from the second image. "
        "Replace only the clothing it covers and keep any other garments the person is already wearing. "
        "Make the fit realistic with natural fabric drape, folds and shadows that match the lighting. "
        f"{IDENTITY_RULES} "
        "Keep the person's current pose. "
        f"Place the person in front of {background_prompt}. "
        f"{OUTPUT_RULES}"
    )


def build_pose_prompt(pose_instruction: str, background_prompt: str) -> str:
    """Prompt for re-rendering the same outfit in another pose."""
    return (
        "You are an expert fashion photographer AI. Take the person in this image and re-render them "
        f"in a new pose: {pose_instruction}. "
        "The person, their outfit and every garment detail must stay exactly the same. "
        f"{IDENTITY_RULES} "
        f"The background must be {background_prompt}. "
        f"{OUTPUT_RULES}"
    )


def build_background_prompt(background_prompt: str) -> str:
    """Prompt for replacing only the scene behind the person."""
    return (
        "You are an expert photo editor AI. Replace the background of this image with "
        f"{background_prompt}. "
        "Keep the person, their pose and their outfit exactly as they are, and adjust the lighting on the "
        "person so it matches the new scene. "
        f"{IDENTITY_RULES} "
        f"{OUTPUT_RULES}"
    )
