# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================


import unittest

from shared.json_utils import camel_to_snake, convert_keys, snake_to_camel


class JsonUtilsTest(unittest.TestCase):

    def test_camel_to_snake(self):
        self.assertEqual(camel_to_snake("imgUrl"), "img_url")
        self.assertEqual(camel_to_snake("isOwner"), "is_owner")
        self.assertEqual(camel_to_snake("_id"), "_id")

    def test_snake_to_camel_keeps_leading_underscore(self):
        self.assertEqual(snake_to_camel("user_id"), "userId")
        self.assertEqual(snake_to_camel("_id"), "_id")

    def test_convert_keys_recurses_into_lists_and_dicts(self):
        data = {"userId": "1", "costData": [{"timePeriod": {"startDate": "x"}}]}
        self.assertEqual(
            convert_keys(data, "camel_to_snake"),
            {"user_id": "1", "cost_data": [{"time_period": {"start_date": "x"}}]},
        )

    def test_unknown_direction(self):
        with self.assertRaises(ValueError):
            convert_keys({}, "sideways")


if __name__ == "__main__":
    unittest.main()
