"""Terminal access, input events and key decoding, themes and the inline ANSI renderer."""