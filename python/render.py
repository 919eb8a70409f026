import numpy as np
from PIL import Image, ImageDraw

BACKGROUND = (255, 255, 255, 255)
OUTLINE = (0, 0, 0, 255)
INSIDE = (200, 30, 30, 255)


def to_pixels(region, xs, ys, width, height):
    # Image rows grow downwards, y grows upwards
    px = (np.asarray(xs, dtype=np.float64) - region.x_min) / (region.x_max - region.x_min) * (width - 1)
    py = (region.y_max - np.asarray(ys, dtype=np.float64)) / (region.y_max - region.y_min) * (height - 1)
    return np.rint(px).astype(np.int64), np.rint(py).astype(np.int64)


def render_points(polygon, region, points, output_path=None, size=512):
    """Draw the sampled inside points and the polygon outline over the region."""
    width = size
    height = max(1, int(round(size * (region.y_max - region.y_min) / (region.x_max - region.x_min))))

    img_array = np.zeros((height, width, 4), dtype=np.uint8)
    img_array[:, :] = BACKGROUND

    if points:
        xs = [p.x for p in points]
        ys = [p.y for p in points]
        px, py = to_pixels(region, xs, ys, width, height)
        visible = (px >= 0) & (px < width) & (py >= 0) & (py < height)
        img_array[py[visible], px[visible]] = INSIDE

    img = Image.fromarray(img_array)
    draw = ImageDraw.Draw(img)
    vx, vy = to_pixels(region, [v.x for v in polygon], [v.y for v in polygon], width, height)
    outline = list(zip(vx.tolist(), vy.tolist()))
    draw.line(outline + outline[:1], fill=OUTLINE, width=1)

    if output_path is not None:
        img.save(output_path)
    return img
