#!/usr/bin/env python3
"""
Build a placeholder waste classification model for development.
The model has the same input (224, 224, 3) and 4-class softmax output as the
trained classifier, so the live app runs end-to-end before the trained
weights are available. Predictions are meaningless.
"""

import argparse
import os

import numpy as np
import tensorflow as tf
from tensorflow import keras

NUM_CLASSES = 4


def create_placeholder_model(image_size: int = 224, num_classes: int = NUM_CLASSES):
    """Create a small untrained CNN with the classifier's input and output shapes"""
    model = keras.Sequential([
        keras.layers.Input(shape=(image_size, image_size, 3), batch_size=1),
        keras.layers.Conv2D(filters=8, kernel_size=3, strides=2, padding='same', activation='relu'),
        keras.layers.MaxPooling2D(pool_size=2),

        keras.layers.Conv2D(filters=16, kernel_size=3, strides=2, padding='same', activation='relu'),
        keras.layers.GlobalAveragePooling2D(),

        keras.layers.Dense(num_classes, activation='softmax')
    ])
    return model


def save_model(model, output_path: str) -> str:
    """Save as Keras (.keras/.h5) or convert to TFLite (.tflite)"""
    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)

    if output_path.endswith('.tflite'):
        converter = tf.lite.TFLiteConverter.from_keras_model(model)
        with open(output_path, 'wb') as f:
            f.write(converter.convert())
    else:
        model.save(output_path)

    print(f"Placeholder model saved to: {output_path}")
    return output_path


def check_model(model, image_size: int = 224):
    """Run one prediction to confirm input and output shapes"""
    test_input = np.random.random((1, image_size, image_size, 3)).astype(np.float32)
    prediction = model.predict(test_input, verbose=0)
    print(f"Input shape: {model.input_shape}")
    print(f"Output shape: {prediction.shape}")
    return prediction


def main(argv=None):
    parser = argparse.ArgumentParser(description="Build a placeholder waste classifier model")
    parser.add_argument('--output', '-o', default='models/model_unquant.tflite',
                        help='Output path (.tflite, .keras or .h5)')
    parser.add_argument('--image-size', type=int, default=224)
    args = parser.parse_args(argv)

    model = create_placeholder_model(args.image_size)
    check_model(model, args.image_size)
    save_model(model, args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
