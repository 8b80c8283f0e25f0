# Copyright (c) Microsoft. All rights reserved.
# Licensed under the MIT license. See LICENSE file in the project root for
# full license information.
"""End-to-end send/receive verification harness for IoT Hub device sessions."""

VERSION = "0.1.0"
